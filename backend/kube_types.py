"""
Type definitions for Kubernetes objects.
"""
from dataclasses import dataclass, field
from typing import Dict, List, Optional


@dataclass
class Instance:
    """Kubernetes Pod representation."""
    name: str
    namespace: str
    labels: Dict[str, str] = field(default_factory=dict)

    def __str__(self) -> str:
        return f"{self.namespace}/{self.name}"


@dataclass(frozen=True)
class DeploymentRef:
    """Deployment resolved from a pod label."""
    namespace: str
    name: str

    def __str__(self) -> str:
        return f"{self.namespace}/{self.name}"


@dataclass
class FailedRestart:
    """A matched pod whose deployment could not be restarted."""
    instance: Instance
    ref: DeploymentRef
    error: str


@dataclass
class RunResult:
    """Outcome of one scan-match-restart pass."""
    ok: bool = True
    error: Optional[Exception] = None  # fatal cause when ok is False
    matched: List[Instance] = field(default_factory=list)
    restarted: List[DeploymentRef] = field(default_factory=list)
    skipped: List[Instance] = field(default_factory=list)
    failed: List[FailedRestart] = field(default_factory=list)
    deduplicated: List[DeploymentRef] = field(default_factory=list)

    @classmethod
    def fatal(cls, error: Exception) -> "RunResult":
        return cls(ok=False, error=error)
