"""Hook execution for resource lifecycle stages.

Pre hooks are adapted into a ``HookOutcome`` first and only then turned into
errors, so callers can inspect the outcome without catching exceptions.
"""

import inspect
import logging
from typing import Any, Callable

from docforge.errors import APIError, wrap_error
from docforge.hooks.types import STAGE_OPERATIONS, Deny, Fail, HookOutcome, Proceed

logger = logging.getLogger(__name__)


async def _call(hook: Callable[..., Any], *args: Any) -> Any:
    result = hook(*args)
    if inspect.isawaitable(result):
        result = await result
    return result


async def run_pre_hook(stage: str, hook: Callable[..., Any] | None, body: Any, *args: Any) -> HookOutcome:
    """Run a pre hook and classify what it returned.

    Args:
        stage: Hook stage name (``preCreate``, ``preUpdate``, ``preDelete``)
        hook: The configured hook, or None to pass ``body`` through
        body: Value handed to the hook as its first argument
        *args: Remaining hook arguments (usually the request)

    Returns:
        Proceed, Deny or Fail
    """
    if hook is None:
        return Proceed(body)

    try:
        result = await _call(hook, body, *args)
    except Exception as e:
        logger.debug("%s hook raised: %s", stage, e)
        return Fail(e)

    if isinstance(result, (Proceed, Deny, Fail)):
        return result
    if result is None:
        return Deny(f"A body must be returned from {stage}")
    return Proceed(result)


def unwrap_pre_outcome(stage: str, outcome: HookOutcome, label: str | None = None) -> Any:
    """Return the body to continue with, or raise the matching APIError.

    Args:
        stage: Hook stage name
        outcome: Outcome produced by ``run_pre_hook``
        label: Optional document id appended to hook error titles

    Raises:
        APIError: 403 for a denial; 400 (or the raised APIError) for a failure
    """
    if isinstance(outcome, Proceed):
        return outcome.body

    operation = STAGE_OPERATIONS.get(stage, stage)
    if isinstance(outcome, Deny):
        raise APIError(f"{operation} not allowed", 403, detail=outcome.detail)

    error = outcome.error
    if isinstance(error, APIError):
        raise error
    where = f"{stage} hook error on {label}" if label else f"{stage} hook error"
    raise wrap_error(error, f"{where}: {error}") from error


async def run_post_hook(
    stage: str,
    hook: Callable[..., Any] | None,
    *args: Any,
    title: str | None = None,
) -> Any:
    """Run a post hook; failures become 400s and nothing is rolled back.

    ``title`` replaces the default "<stage> hook error" prefix of the error title.
    Returns whatever the hook returned (None without a hook); only the
    read and list stages use it.

    Raises:
        APIError: The hook's own APIError, or a 400 wrapping any other error
    """
    if hook is None:
        return None

    try:
        return await _call(hook, *args)
    except APIError:
        raise
    except Exception as e:
        logger.warning("%s hook failed: %s", stage, e)
        prefix = title or f"{stage} hook error"
        raise wrap_error(e, f"{prefix}: {e}") from e
