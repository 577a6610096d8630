"""
HL7 over HTTP reception endpoint.

The HL7 v2 message is the request body; the acknowledgment is returned as
the response body with the same media type.
"""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Request
from fastapi.responses import PlainTextResponse, Response

from hl7bridge.di import get_receiving_application
from hl7bridge.hl7 import AckReply, EscalatedError, HL7ParseError
from hl7bridge.receiver import BridgeReceivingApplication

logger = logging.getLogger(__name__)

router = APIRouter()

HL7_MEDIA_TYPE = "application/hl7-v2"
DEFAULT_CHARSET = "utf-8"


def _charset_from(content_type: str) -> str:
    for param in content_type.split(";")[1:]:
        key, _, value = param.partition("=")
        if key.strip().lower() == "charset" and value.strip():
            return value.strip().strip('"')
    return DEFAULT_CHARSET


@router.post("/hl7")
async def receive_hl7_message(
    request: Request,
    application: BridgeReceivingApplication = Depends(get_receiving_application),
):
    """
    Receive one HL7 v2.x message and reply with its acknowledgment.

    Returns:
        - 200 with the ACK (AA, or AE/AR under the degrade policy or type filtering)
        - 400 when the body is not an HL7 message
        - 500 with an AE acknowledgment when a delivery failure is escalated
    """
    content_type = request.headers.get("content-type", HL7_MEDIA_TYPE)
    charset = _charset_from(content_type)

    body = await request.body()
    try:
        raw = body.decode(charset)
    except (LookupError, UnicodeDecodeError) as e:
        logger.warning("Could not decode HL7 request body as %s: %s", charset, e)
        return PlainTextResponse(f"Unable to decode message body as {charset}", status_code=400)

    metadata = {
        "remote_addr": request.client.host if request.client else None,
        "received_at": datetime.now(timezone.utc).isoformat(),
        "content_type": content_type,
    }

    try:
        reply = await application.on_message_received(raw, metadata)
    except HL7ParseError as e:
        logger.warning("Rejected unparseable HL7 request from %s: %s", metadata["remote_addr"], e)
        return PlainTextResponse(f"Invalid HL7 message: {e}", status_code=400)
    except EscalatedError as e:
        logger.error("HL7 message processing failed: %s", e)
        if e.reply is None:
            return PlainTextResponse(f"Message processing failed: {e}", status_code=500)
        return _hl7_response(e.reply, charset, status_code=500)

    return _hl7_response(reply, charset)


def _hl7_response(reply: AckReply, charset: str, status_code: int = 200) -> Response:
    return Response(
        content=reply.encode().encode(charset, errors="replace"),
        status_code=status_code,
        media_type=f"{HL7_MEDIA_TYPE}; charset={charset}",
    )
