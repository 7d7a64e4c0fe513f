"""Tests for the form catalogue."""

import pytest
import yaml

from legalflow.common.forms import (
    COMMON_DOCUMENT_TYPE,
    DEFAULT_FIRST_LEVEL_ROLES,
    FormConfig,
    DocumentRequirement,
    default_forms,
    get_form,
    load_forms_config,
    parse_document_requirement,
    parse_form_config,
    parse_forms,
)


class TestDefaultForms:
    """Tests for the built-in catalogue."""

    def test_ten_forms(self):
        forms = default_forms()
        assert sorted(forms) == list(range(1, 11))

    def test_litigation_form(self):
        form = default_forms()[3]
        assert form.name == "Instruction For Litigation"
        assert form.litigation
        assert form.first_level_roles == ["BUM", "FBP"]

    def test_regular_form(self):
        form = default_forms()[1]
        assert not form.litigation
        assert form.first_level_roles == DEFAULT_FIRST_LEVEL_ROLES

    def test_get_form_unknown(self):
        with pytest.raises(ValueError):
            get_form(default_forms(), 11)
        with pytest.raises(ValueError):
            get_form(default_forms(), "abc")


class TestRequiredDocuments:
    """Tests for per-party document derivation."""

    def test_company_documents_plus_common(self):
        docs = default_forms()[1].required_documents(["Company"])
        labels = [d.label for d in docs]

        assert "Certificate of Incorporation" in labels
        assert "Board Resolution" in labels
        assert "Form 15 (latest form)" in labels
        assert "NIC copy" not in labels

    def test_party_type_is_normalized(self):
        docs = default_forms()[1].required_documents(["sole-proprietorship"])
        assert "NIC copy of Proprietor" in [d.label for d in docs]

    def test_labels_are_deduplicated(self):
        docs = default_forms()[1].required_documents(["Partnership", "Sole proprietorship"])
        labels = [d.label for d in docs]

        assert labels.count("Business Registration Certificate") == 1

    def test_no_parties_gives_common_only(self):
        docs = default_forms()[1].required_documents([])
        assert docs
        assert all(d.doc_type == COMMON_DOCUMENT_TYPE for d in docs)


class TestParsing:
    """Tests for form configuration parsing."""

    def test_parse_document_requirement(self):
        assert parse_document_requirement({"label": "NIC", "type": "Individual"}) == DocumentRequirement("NIC", "Individual")
        assert parse_document_requirement(("NIC", "Individual")) == DocumentRequirement("NIC", "Individual")
        assert parse_document_requirement({"label": "Tax file"}).doc_type == COMMON_DOCUMENT_TYPE

    def test_parse_form_defaults(self):
        form = parse_form_config(4, {})

        assert isinstance(form, FormConfig)
        assert form.name == "Form 4"
        assert form.first_level_roles == DEFAULT_FIRST_LEVEL_ROLES
        assert [d.label for d in form.documents] == ["Certificate of Incorporation"]

    def test_parse_form_out_of_range(self):
        with pytest.raises(ValueError):
            parse_form_config(0, {})
        with pytest.raises(ValueError):
            parse_form_config(11, {})

    def test_parse_form_unknown_role(self):
        with pytest.raises(ValueError):
            parse_form_config(1, {"first_level_roles": ["BUM", "LEGAL_GM"]})

    def test_parse_form_empty_roles(self):
        with pytest.raises(ValueError):
            parse_form_config(1, {"first_level_roles": []})

    def test_parse_forms_overlays_defaults(self):
        forms = parse_forms({"forms": {2: {"first_level_roles": ["bum"]}}})

        assert forms[2].name == "Lease Agreement"
        assert forms[2].first_level_roles == ["BUM"]
        assert forms[3].litigation


class TestLoadFormsConfig:
    """Tests for YAML loading."""

    def test_no_path_gives_defaults(self):
        assert load_forms_config(None)[1].name == "Contract Review Form"

    def test_load_yaml(self, tmp_path):
        config_file = tmp_path / "forms.yaml"
        config_file.write_text(yaml.safe_dump({
            "forms": {
                5: {
                    "name": "Power of Attorney",
                    "documents": [{"label": "Passport copy", "type": "Individual"}],
                }
            }
        }))

        forms = load_forms_config(str(config_file))

        assert forms[5].name == "Power of Attorney"
        assert [d.label for d in forms[5].documents] == ["Passport copy"]
        assert forms[1].name == "Contract Review Form"

    def test_empty_file(self, tmp_path):
        config_file = tmp_path / "forms.yaml"
        config_file.write_text("")

        assert len(load_forms_config(str(config_file))) == 10

    def test_nonexistent(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_forms_config(str(tmp_path / "nonexistent.yaml"))

    def test_root_must_be_mapping(self, tmp_path):
        config_file = tmp_path / "forms.yaml"
        config_file.write_text("- 1\n- 2\n")

        with pytest.raises(TypeError):
            load_forms_config(str(config_file))

    def test_env_expansion(self, tmp_path, monkeypatch):
        monkeypatch.setenv("LEASE_FORM_NAME", "Property Lease")
        config_file = tmp_path / "forms.yaml"
        config_file.write_text("forms:\n  2:\n    name: ${LEASE_FORM_NAME}\n")

        assert load_forms_config(str(config_file))[2].name == "Property Lease"
