"""Result dataclasses used by task tracking and multi-target operations."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class TaskOutcome:
    name: str
    state: str
    error: str = ''
    result: Any = None

    @property
    def ok(self) -> bool:
        return self.state == 'success'

    def describe(self) -> str:
        if self.ok:
            return f'{self.name}: success'
        return f'{self.name}: {self.state}: {self.error or "(no details)"}'


@dataclass
class ProgressReport:
    outcomes: list[TaskOutcome] = field(default_factory=list)

    @property
    def succeeded(self) -> list[TaskOutcome]:
        return [o for o in self.outcomes if o.ok]

    @property
    def failed(self) -> list[TaskOutcome]:
        return [o for o in self.outcomes if not o.ok]

    @property
    def ok(self) -> bool:
        return not self.failed

    @property
    def exit_code(self) -> int:
        return 0 if self.ok else 1

    def as_dict(self) -> dict[str, list[str]]:
        return {
            'succeeded': [o.name for o in self.succeeded],
            'failed': [o.describe() for o in self.failed],
        }
