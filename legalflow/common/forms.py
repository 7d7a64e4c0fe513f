"""Form catalogue for LegalFlow.

Each form type fixes which optional stages exist (litigation forms carry a
Court Officer sub-stage), which first-level roles sign off, and which
documents the initiator has to supply per party type.

The built-in catalogue can be overlaid from a YAML file::

    forms:
      3:
        name: Instruction For Litigation
        litigation: true
        first_level_roles: [BUM, FBP]
        documents:
          - {label: Certificate of Incorporation, type: Company}
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml


FORM_ID_MIN = 1
FORM_ID_MAX = 10

COMMON_DOCUMENT_TYPE = "Common"

DEFAULT_FIRST_LEVEL_ROLES = ["BUM", "FBP", "CLUSTER_HEAD"]

_CONTRACT_REVIEW_DOCUMENTS = [
    ("Certificate of Incorporation", "Company"),
    ("Form 1 (Company Registration)", "Company"),
    ("Articles of Association", "Company"),
    ("Board Resolution", "Company"),
    ("VAT Registration Certificate", "Company"),
    ("Partnership Agreement", "Partnership"),
    ("Business Registration Certificate", "Partnership"),
    ("NIC copies of all Partners", "Partnership"),
    ("Business Registration Certificate", "Sole proprietorship"),
    ("NIC copy of Proprietor", "Sole proprietorship"),
    ("NIC copy", "Individual"),
    ("Proof of Address", "Individual"),
    ("Form 15 (latest form)", COMMON_DOCUMENT_TYPE),
    ("Form 13 (latest form if applicable)", COMMON_DOCUMENT_TYPE),
    ("Form 20 (latest form if applicable)", COMMON_DOCUMENT_TYPE),
]

_INCORPORATION_ONLY = [("Certificate of Incorporation", "Company")]

# form_id -> (name, litigation, first-level roles, documents)
DEFAULT_FORMS: Dict[int, Dict[str, Any]] = {
    1: {"name": "Contract Review Form", "documents": _CONTRACT_REVIEW_DOCUMENTS},
    2: {"name": "Lease Agreement"},
    3: {
        "name": "Instruction For Litigation",
        "litigation": True,
        "first_level_roles": ["BUM", "FBP"],
    },
    4: {"name": "Vehicle Rent Agreement"},
    5: {"name": "Request for Power of Attorney"},
    6: {"name": "Registration of a Trademark"},
    7: {"name": "Termination of agreements/lease agreements"},
    8: {"name": "Handing over of the leased premises"},
    9: {"name": "Approval for Purchasing of a Premises"},
    10: {"name": "Instruction to Issue Letter of Demand"},
}


@dataclass
class DocumentRequirement:
    """A document the initiator must supply."""

    label: str
    doc_type: str


@dataclass
class FormConfig:
    """Configuration for a single form type."""

    form_id: int
    name: str
    litigation: bool = False
    first_level_roles: List[str] = field(default_factory=lambda: list(DEFAULT_FIRST_LEVEL_ROLES))
    documents: List[DocumentRequirement] = field(default_factory=list)

    def required_documents(self, party_types: List[str]) -> List[DocumentRequirement]:
        """Party-specific plus common documents, first occurrence of each label wins."""
        wanted = {_normalize_party_type(t) for t in party_types if t}
        seen = set()
        result = []
        for doc in self.documents:
            if doc.doc_type != COMMON_DOCUMENT_TYPE and _normalize_party_type(doc.doc_type) not in wanted:
                continue
            if doc.label in seen:
                continue
            seen.add(doc.label)
            result.append(doc)
        return result


def _normalize_party_type(party_type: str) -> str:
    return party_type.replace("-", " ").strip().lower()


def parse_document_requirement(doc: Any) -> DocumentRequirement:
    """Parse a document entry given as a mapping or a ``(label, type)`` pair."""
    if isinstance(doc, dict):
        return DocumentRequirement(label=doc.get("label", ""), doc_type=doc.get("type", COMMON_DOCUMENT_TYPE))
    label, doc_type = doc
    return DocumentRequirement(label=label, doc_type=doc_type)


def parse_form_config(form_id: int, form_dict: Dict[str, Any]) -> FormConfig:
    """Parse a form configuration dictionary.

    Args:
        form_id: Form identifier (1-10)
        form_dict: Form configuration dictionary

    Returns:
        FormConfig instance

    Raises:
        ValueError: If the form id is out of range or a role is not first-level
    """
    form_id = int(form_id)
    if not FORM_ID_MIN <= form_id <= FORM_ID_MAX:
        raise ValueError(f"Form id must be between {FORM_ID_MIN} and {FORM_ID_MAX}, got {form_id}")

    roles = [str(r).upper() for r in form_dict.get("first_level_roles", DEFAULT_FIRST_LEVEL_ROLES)]
    unknown = [r for r in roles if r not in DEFAULT_FIRST_LEVEL_ROLES]
    if unknown:
        raise ValueError(f"Form {form_id}: not first-level roles: {', '.join(unknown)}")
    if not roles:
        raise ValueError(f"Form {form_id}: at least one first-level role is required")

    documents = [parse_document_requirement(d) for d in form_dict.get("documents", _INCORPORATION_ONLY)]

    return FormConfig(
        form_id=form_id,
        name=form_dict.get("name", f"Form {form_id}"),
        litigation=bool(form_dict.get("litigation", False)),
        first_level_roles=roles,
        documents=documents,
    )


def default_forms() -> Dict[int, FormConfig]:
    """Build the built-in catalogue."""
    return {form_id: parse_form_config(form_id, form_dict) for form_id, form_dict in DEFAULT_FORMS.items()}


def parse_forms(config_dict: Dict[str, Any]) -> Dict[int, FormConfig]:
    """Overlay a ``forms`` mapping on the built-in catalogue.

    Keys given in the file replace the matching keys of the default entry;
    unspecified forms keep their defaults.
    """
    forms = dict(DEFAULT_FORMS)
    for form_id, form_dict in (config_dict.get("forms") or {}).items():
        merged = dict(forms.get(int(form_id), {}))
        merged.update(form_dict or {})
        forms[int(form_id)] = merged
    return {form_id: parse_form_config(form_id, form_dict) for form_id, form_dict in forms.items()}


def load_forms_config(config_path: Optional[str] = None) -> Dict[int, FormConfig]:
    """Load the form catalogue, optionally overlaid from a YAML file.

    Args:
        config_path: Path to a YAML file, or None for the built-in catalogue

    Returns:
        Mapping of form id to FormConfig

    Raises:
        FileNotFoundError: If config file doesn't exist
        yaml.YAMLError: If config file is invalid YAML
    """
    if not config_path:
        return default_forms()

    config_file = Path(config_path)
    if not config_file.exists():
        raise FileNotFoundError(f"Forms configuration file not found: {config_path}")

    with config_file.open("r") as f:
        config = yaml.safe_load(f)

    if config is None:
        config = {}

    if not isinstance(config, dict):
        raise TypeError(
            f"Configuration root must be a mapping, got {type(config).__name__}"
        )

    return parse_forms(_expand_env_vars(config))


def _expand_env_vars(obj: Any) -> Any:
    """Recursively expand environment variables in configuration."""
    if isinstance(obj, dict):
        return {key: _expand_env_vars(value) for key, value in obj.items()}
    elif isinstance(obj, list):
        return [_expand_env_vars(item) for item in obj]
    elif isinstance(obj, str):
        return os.path.expandvars(obj)
    else:
        return obj


def get_form(forms: Dict[int, FormConfig], form_id: int) -> FormConfig:
    """Look up a form, raising ValueError for unknown ids."""
    try:
        return forms[int(form_id)]
    except (KeyError, TypeError, ValueError):
        raise ValueError(f"Unknown form id: {form_id}")
