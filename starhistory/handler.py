"""
AWS Lambda entrypoint for one-shot star history charts

Each invocation builds its own session, runs a single fetch-then-compose
cycle and returns the chart payload.
"""

import asyncio
import logging
from typing import Any, Callable, Dict, Optional

from starhistory.services.history.errors import LocalPreconditionError
from starhistory.services.history.fetcher import HistorySource
from starhistory.services.history.repo_ids import parse_share_hash
from starhistory.session import StarHistorySession

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


async def build_chart(event: Dict[str, Any], source: Optional[HistorySource] = None) -> Dict[str, Any]:
    """
    Run one cycle for the repositories named in `event`.

    Accepted payloads:
    - {"repos": ["owner/a", "owner/b"], "mode": "Date" | "Timeline", "token": "..."}
    - {"hash": "owner/a&owner/b&Timeline", "token": "..."}
    """
    if event.get("hash"):
        repos, mode = parse_share_hash(str(event["hash"]))
    else:
        repos, mode = list(event.get("repos") or []), event.get("mode")

    session = StarHistorySession(tracked=repos, mode=mode, credential=event.get("token"), source=source)
    report = await session.refresh()
    chart = session.chart_data
    return {
        "repos": list(session.tracked_ids),
        "hash": session.share_hash,
        "credential_required": session.credential_required,
        "report": report.as_dict(),
        "chart": chart.to_payload() if chart is not None else None,
    }


def lambda_handler(
    event: Optional[Dict[str, Any]],
    context: Any,
    source_factory: Optional[Callable[[], HistorySource]] = None,
) -> Dict[str, Any]:
    """
    AWS Lambda entrypoint.

    Args:
        event: Chart request payload
        context: Lambda context object
        source_factory: Optional history source override

    Returns:
        Dictionary with statusCode and result
    """
    event = event or {}
    logger.info(f"Lambda invoked with {len(event.get('repos') or [])} repos")

    try:
        source = source_factory() if source_factory else None
        result = asyncio.run(build_chart(event, source))
    except LocalPreconditionError as e:
        logger.warning(f"Rejected chart request: {e}")
        return {"statusCode": 400, "error": str(e)}
    except Exception as e:
        logger.error(f"Lambda execution failed: {e}", exc_info=True)
        return {"statusCode": 500, "error": str(e)}

    status = 401 if result["credential_required"] and result["chart"] is None else 200
    return {"statusCode": status, "result": result}
