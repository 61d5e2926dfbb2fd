"""Error mapping for the pipeline handlers"""
from contextlib import contextmanager

from fusionrisk.log_config import handler_logger
from fusionrisk.utils.errors import FusionRiskError
from api.utils.metrics import increment_counter


@contextmanager
def handler_errors(handler: str):
    """Run a handler body, normalizing failures to FusionRiskError.

    Known errors pass through with their own status code. Anything else
    becomes a 500 carrying the original message as details.
    """
    try:
        yield
    except FusionRiskError as e:
        if e.status_code >= 500:
            increment_counter("pipeline_errors_total", {"handler": handler})
            handler_logger(handler).error(f"{e.message}: {e.details}")
        raise
    except Exception as e:
        increment_counter("pipeline_errors_total", {"handler": handler})
        handler_logger(handler).exception("Unhandled error")
        raise FusionRiskError("Internal server error", details=str(e)) from e
    else:
        increment_counter("pipeline_runs_total", {"handler": handler})
