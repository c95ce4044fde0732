from __future__ import annotations

import subprocess
from dataclasses import dataclass, field


@dataclass
class ProcessHandle:
    """Represents the llama-server subprocess owned by a supervisor."""

    process: subprocess.Popen
    args: list[str] = field(default_factory=list)  # Launch arguments used
    model: str | None = None  # The model identifier it was started for

    @property
    def pid(self) -> int:
        return self.process.pid
