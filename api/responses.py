"""
Response envelope shared by every endpoint: ``{success, data?, error?}``.

Domain errors map onto status codes here so routers only describe what
each action does.
"""

import logging
from typing import Any, Callable, List, Optional

from fastapi.responses import JSONResponse
from pydantic import ValidationError

from netharness.domain.errors import InvalidSpecError, NotFoundError

logger = logging.getLogger(__name__)

INTERNAL_ERROR = "Internal server error"
UNKNOWN_ACTION_ERRORS = {"union_tag_invalid", "union_tag_not_found"}


def ok(data: Any = None) -> dict:
    return {"success": True, "data": data}


def fail(status_code: int, error: str, problems: Optional[List[str]] = None) -> JSONResponse:
    content = {"success": False, "error": error}
    if problems:
        content["problems"] = problems
    return JSONResponse(status_code=status_code, content=content)


def describe_errors(errors) -> List[str]:
    """``loc: msg`` lines from pydantic/FastAPI error dicts."""
    lines = []
    for err in errors:
        loc = ".".join(str(part) for part in err.get("loc", ()) if part not in ("body", "query"))
        lines.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
    return lines


def _unknown_action(err) -> bool:
    if err.get("type") in UNKNOWN_ACTION_ERRORS:
        return True
    # GET actions are enums; a value outside the enum is an unknown action
    loc = tuple(err.get("loc", ()))
    return err.get("type") == "enum" and loc[-1:] == ("action",)


def invalid_request(errors) -> JSONResponse:
    errors = list(errors)
    if any(_unknown_action(err) for err in errors):
        return fail(400, "Invalid action", describe_errors(errors))
    return fail(400, "Invalid request", describe_errors(errors))


def respond(label: str, operation: Callable[[], Any]):
    """Run one action and wrap its outcome in the envelope."""
    try:
        return ok(operation())
    except NotFoundError as e:
        return fail(404, str(e))
    except InvalidSpecError as e:
        logger.info(f"{label} rejected: {e}")
        return fail(400, str(e), e.problems)
    except ValidationError as e:
        return invalid_request(e.errors())
    except Exception:
        logger.exception(f"{label} failed")
        return fail(500, INTERNAL_ERROR)
