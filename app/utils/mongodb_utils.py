# app/utils/mongodb_utils.py
from typing import Any, Dict, Optional


def convert_mongodb_result(result: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """
    Drop Mongo's internal _id so the document validates against our pydantic records.

    Documents carry their own string identifiers (id / chat_id).
    """
    if not result:
        return result
    result = dict(result)
    result.pop("_id", None)
    return result


def preview(body: str, limit: int = 50) -> str:
    """Chat list preview: first `limit` characters plus an ellipsis when cut."""
    return body[:limit] + "..." if len(body) > limit else body
