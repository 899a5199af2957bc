from urllib.parse import quote

from fastapi import Response

from studymint.paywall.models import DeliveryResult


def attachment_response(result: DeliveryResult, inline: bool = False) -> Response:
    """Response с Content-Disposition; не-ASCII имя уходит в filename* (RFC 5987)."""
    ascii_name = result.file_name.encode("ascii", "replace").decode("ascii").replace("?", "_")
    disposition = "inline" if inline else "attachment"
    headers = {
        "Content-Disposition": f"{disposition}; filename=\"{ascii_name}\"; filename*=UTF-8''{quote(result.file_name)}",
        "X-Watermarked": "1" if result.watermarked else "0",
    }
    if result.replay:
        headers["X-Download-Replay"] = "1"
    return Response(content=result.content, media_type=result.media_type, headers=headers)
