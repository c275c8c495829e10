"""Local-first validation for client, worker and task allocation spreadsheets."""

__version__ = "0.1.0"

from roster_doctor.engine import validate_all, validate_dataset  # noqa: E402
from roster_doctor.models import Client, Dataset, Finding, Rule, RuleType, Task, Worker  # noqa: E402

__all__ = [
    "Client",
    "Dataset",
    "Finding",
    "Rule",
    "RuleType",
    "Task",
    "Worker",
    "__version__",
    "validate_all",
    "validate_dataset",
]
