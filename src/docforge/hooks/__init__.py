"""Resource lifecycle hooks."""

from docforge.hooks.service import run_post_hook, run_pre_hook, unwrap_pre_outcome
from docforge.hooks.types import Deny, Fail, HookOutcome, Proceed

__all__ = [
    "Deny",
    "Fail",
    "HookOutcome",
    "Proceed",
    "run_post_hook",
    "run_pre_hook",
    "unwrap_pre_outcome",
]
