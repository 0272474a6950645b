"""sheet-unify — Reconcile spreadsheet headers into one unified record set."""

__version__ = "0.1.0"

DEFAULT_FIELDS: list[str] = [
    "candidateId",
    "firstName",
    "lastName",
    "email",
    "phone",
    "skills",
    "experience",
    "education",
]
