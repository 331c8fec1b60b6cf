"""MasterDataNormalizer package exports."""

from .audit import __all__ as _audit_all
from .cli import __all__ as _cli_all
from .commit import __all__ as _commit_all
from .config import __all__ as _config_all
from .exceptions import __all__ as _exceptions_all
from .matching import __all__ as _matching_all
from .session import __all__ as _session_all
from .telemetry import __all__ as _telemetry_all
from .workflow import __all__ as _workflow_all

__all__ = [
    *_audit_all,
    *_cli_all,
    *_commit_all,
    *_config_all,
    *_exceptions_all,
    *_matching_all,
    *_session_all,
    *_telemetry_all,
    *_workflow_all,
]
