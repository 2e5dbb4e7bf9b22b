import json
from typing import Any, Union

from pydantic import BaseModel, ConfigDict, StrictStr, ValidationError

from models.errors import DecodeFailure

class Envelope(BaseModel):
    ''' One inbound frame: {"type": ..., <kind specific fields>}.'''

    # unknown fields are kept so forwarded messages stay verbatim
    model_config = ConfigDict(extra="allow")

    # only the discriminant is typed, everything else passes through as sent
    type: StrictStr
    role: Any = None
    button: Any = None
    status: Any = None

    def to_wire(self) -> dict:
        # only what the sender actually supplied
        wire = self.model_dump(exclude_unset=True)
        wire.update(self.model_extra or {})
        return wire

def decode_message(raw: Union[str, bytes]) -> Envelope:
    try:
        payload = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise DecodeFailure(f"invalid json: {exc}") from exc
    if not isinstance(payload, dict):
        raise DecodeFailure("message must be a JSON object")
    try:
        return Envelope.model_validate(payload)
    except ValidationError as exc:
        raise DecodeFailure(f"invalid envelope: {exc.error_count()} error(s)") from exc
