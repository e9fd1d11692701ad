import json

from pydantic import BaseModel

HEARTBEAT_FRAME = ": heartbeat\n\n"


def sse_event(event: BaseModel) -> str:
    """Serialize a typed stream event as a single SSE data frame."""
    data = event.model_dump(mode="json", by_alias=True)
    return "data: " + json.dumps(data, ensure_ascii=False) + "\n\n"
