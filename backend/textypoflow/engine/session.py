"""Editor session: the live workspace, run history and engine served by the API."""
from ..providers import get_provider
from ..providers.base import GenerationProvider
from .executor import ProgressCallback, WorkflowEngine
from .history import HistoryStore
from .workspace import Workspace


class EditorSession:
    def __init__(self, provider: GenerationProvider):
        self.workspace = Workspace()
        self.history = HistoryStore()
        self.engine = WorkflowEngine(provider, history=self.history)
        # The workspace mirrors every engine mutation
        self.engine.subscribe(self.workspace.apply_event)

    def subscribe(self, callback: ProgressCallback) -> None:
        self.engine.subscribe(callback)


_session: EditorSession | None = None


def create_session(provider: GenerationProvider | None = None) -> EditorSession:
    global _session
    _session = EditorSession(provider or get_provider())
    return _session


def get_session() -> EditorSession:
    if _session is None:
        return create_session()
    return _session


async def close_session() -> None:
    global _session
    if _session is not None:
        await _session.engine.provider.aclose()
        _session = None
