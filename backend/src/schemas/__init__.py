from schemas.schemas import Envelope, decode_message
