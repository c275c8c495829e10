from roster_doctor.validators.clients import validate_clients
from roster_doctor.validators.relationships import validate_relationships
from roster_doctor.validators.rules import validate_rule_conflicts
from roster_doctor.validators.tasks import validate_tasks
from roster_doctor.validators.workers import validate_workers

__all__ = [
    "validate_clients",
    "validate_relationships",
    "validate_rule_conflicts",
    "validate_tasks",
    "validate_workers",
]
