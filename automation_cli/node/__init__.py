"""Container-backed node orchestration."""

from .client import MemoryCookieStore, NodeClient, OCR2KeyBundle
from .engine import BindMount, ContainerEngine, ContainerSpec, ContainerSummary, DockerEngine
from .orchestrator import DATABASE_IMAGE, NodeOrchestrator, management_url

__all__ = [
    "BindMount",
    "ContainerEngine",
    "ContainerSpec",
    "ContainerSummary",
    "DATABASE_IMAGE",
    "DockerEngine",
    "MemoryCookieStore",
    "NodeClient",
    "NodeOrchestrator",
    "OCR2KeyBundle",
    "management_url",
]
