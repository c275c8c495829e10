"""
Built-in sample datasets.

`sample_dataset()` is a small consultancy roster that validates clean.
`messy_sample_dataset()` extends it with rows that trip every finding code
at least once, which makes it handy for demos and regression tests.
"""

from __future__ import annotations

import copy

from roster_doctor.models import Client, Dataset, Rule, RuleType, Task, Worker


def _clients() -> list[Client]:
    return [
        Client(
            id="client-001",
            name="Acme Corporation",
            priority=5,
            budget=1500000.0,
            requested_task_ids=["task-001", "task-002", "task-003"],
            group_tag="enterprise",
            attributes_json={"industry": "technology", "size": "large", "urgency": "high"},
            phases=[1, 2, 3],
        ),
        Client(
            id="client-002",
            name="StartupXYZ",
            priority=3,
            budget=500000.0,
            requested_task_ids=["task-004", "task-005"],
            group_tag="startup",
            attributes_json={"industry": "fintech", "size": "small", "urgency": "medium"},
            phases=[1, 2],
        ),
        Client(
            id="client-003",
            name="Global Industries",
            priority=4,
            budget=2000000.0,
            requested_task_ids=["task-006", "task-007", "task-008"],
            group_tag="enterprise",
            attributes_json={"industry": "manufacturing", "size": "large", "urgency": "high"},
            phases=[2, 3, 4],
        ),
    ]


def _workers() -> list[Worker]:
    return [
        Worker(
            id="worker-001",
            name="Alice Johnson",
            skills=["React", "TypeScript", "Node.js", "React Native"],
            capacity=40.0,
            available_slots=[1, 2, 3, 4, 5],
            max_load_per_phase=5,
            worker_group="frontend",
            qualification_level=5,
        ),
        Worker(
            id="worker-002",
            name="Bob Smith",
            skills=["Python", "PostgreSQL", "Database Design", "Docker"],
            capacity=35.0,
            available_slots=[1, 2, 3, 4],
            max_load_per_phase=4,
            worker_group="backend",
            qualification_level=4,
        ),
        Worker(
            id="worker-003",
            name="Carol Davis",
            skills=["UI/UX", "Figma", "Testing", "Automation"],
            capacity=30.0,
            available_slots=[1, 2, 3, 4],
            max_load_per_phase=4,
            worker_group="design",
            qualification_level=5,
        ),
        Worker(
            id="worker-004",
            name="David Wilson",
            skills=["Java", "Spring Boot", "Microservices", "Kubernetes", "AWS"],
            capacity=40.0,
            available_slots=[2, 3, 4, 5],
            max_load_per_phase=4,
            worker_group="backend",
            qualification_level=5,
        ),
    ]


def _tasks() -> list[Task]:
    return [
        Task("task-001", "Frontend Development", "client-001", 3, ["React", "TypeScript"], 5, [1, 2], 2, [], "development"),
        Task("task-002", "Backend API Development", "client-001", 4, ["Node.js", "PostgreSQL"], 5, [2, 3], 1, ["task-001"], "development"),
        Task("task-003", "UI/UX Design", "client-001", 2, ["UI/UX", "Figma"], 4, [1], 1, [], "design"),
        Task("task-004", "Mobile App Development", "client-002", 5, ["React", "React Native"], 3, [1, 2, 3], 2, [], "development"),
        Task("task-005", "Database Design", "client-002", 2, ["PostgreSQL", "Database Design"], 3, [1], 1, [], "architecture"),
        Task("task-006", "Microservices Architecture", "client-003", 4, ["Java", "Spring Boot", "Microservices"], 4, [2, 3, 4], 1, [], "architecture"),
        Task("task-007", "DevOps Setup", "client-003", 3, ["Docker", "Kubernetes", "AWS"], 4, [3, 4], 1, ["task-006"], "infrastructure"),
        Task("task-008", "Quality Assurance", "client-003", 2, ["Testing", "Automation"], 3, [4], 2, ["task-006", "task-007"], "testing"),
    ]


def _rules() -> list[Rule]:
    return [
        Rule("rule-001", RuleType.CO_RUN, "Design alongside frontend", tasks=["task-001", "task-003"]),
        Rule("rule-002", RuleType.SEQUENCE, "Platform rollout order", tasks=["task-006", "task-007", "task-008"]),
        Rule("rule-003", RuleType.PHASE_WINDOW, "Schema early", tasks=["task-005"], phases=[1, 2]),
        Rule(
            "rule-004",
            RuleType.LOAD_LIMIT,
            "Design team load",
            workers=["worker-003"],
            parameters={"max_slots_per_phase": 2},
        ),
        Rule("rule-005", RuleType.PRECEDENCE_OVERRIDE, "Acme first", tasks=["task-001"], priority=1),
        Rule("rule-006", RuleType.EXCLUSION, "Separate mobile and platform", tasks=["task-004", "task-006"]),
    ]


def sample_dataset() -> Dataset:
    return Dataset(clients=_clients(), workers=_workers(), tasks=_tasks(), rules=_rules())


def messy_sample_dataset() -> Dataset:
    dataset = copy.deepcopy(sample_dataset())

    dataset.clients.extend(
        [
            Client("", "Northwind Traders", priority=2, requested_task_ids=["task-001"]),
            Client("client-005", "", priority=2),
            Client("client-002", "StartupXYZ (copy)", priority=3),
            Client("client-006", "Initech", priority=7),
            Client("client-007", "Umbrella", requested_task_ids=["task-001", "task-999"]),
            Client("client-008", "Hooli", attributes_json='{"industry": "tech"'),
            Client("client-009", "Pied Piper", group_tag="agency"),
        ]
    )

    dataset.workers.extend(
        [
            Worker("", "Erin Ortiz", skills=["React"], available_slots=[1, 2], max_load_per_phase=1),
            Worker("worker-006", "", skills=["Python"], available_slots=[1], max_load_per_phase=1),
            Worker("worker-002", "Bob Smith Jr", skills=["Docker"], available_slots=[3], max_load_per_phase=1),
            Worker("worker-008", "Frank Moore", skills=["Figma"], available_slots=[1, 2, 12], max_load_per_phase=2),
            Worker("worker-009", "Grace Lee", skills=["Java"], available_slots=[4, 5], max_load_per_phase=3),
            Worker("worker-010", "Heidi Klum", skills=["COBOL"], available_slots=[5], max_load_per_phase=1),
        ]
    )

    dataset.tasks.extend(
        [
            Task("", "Untitled Task", "client-001", required_skills=["React"], preferred_phases=[1]),
            Task("task-010", "", "client-001"),
            Task("task-003", "UI Polish", "client-001"),
            Task("task-012", "Legacy Port", "client-404"),
            Task("task-013", "Kickoff", "client-002", duration=0),
            Task("task-014", "Rust Rewrite", "client-003", required_skills=["Rust"]),
            Task("task-015", "Urgent Fix", "client-003", priority=9),
            Task("task-016", "Retro", "client-002", preferred_phases=[0, 2, 11]),
            Task("task-017", "Load Test", "client-003", max_concurrent=0),
            Task("task-018", "Migration A", "client-003", dependencies=["task-019"]),
            Task("task-019", "Migration B", "client-003", dependencies=["task-018"]),
            Task("task-020", "Data Backfill", "client-003", duration=30, preferred_phases=[5]),
        ]
    )

    dataset.rules.extend(
        [
            Rule("rule-007", RuleType.CO_RUN, "Mobile with schema", tasks=["task-004", "task-005", "task-002"]),
            Rule("rule-008", RuleType.EXCLUSION, "Keep mobile apart", tasks=["task-004", "task-005"]),
            Rule("rule-009", RuleType.CO_RUN, "Schema with mobile", tasks=["task-005", "task-004"]),
            Rule("rule-010", RuleType.PRECEDENCE_OVERRIDE, "Startup first", tasks=["task-004"], priority=1),
        ]
    )
    return dataset
