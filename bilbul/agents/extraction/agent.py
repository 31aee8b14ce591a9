"""
ExtractionAgent Runner

Single-shot multimodal extraction: receipt photo in, raw {items, totalAmount}
out. Validation of the payload is NOT done here; the receipt model owns it.
"""

import asyncio
import base64
import binascii
import ipaddress
import json
import logging
import socket
from typing import List, Optional, Tuple, Union

import httpx
from google.genai import types

from bilbul.agents.client import get_gemini_client
from bilbul.agents.extraction.prompts import (
    EXTRACTION_AGENT_SYSTEM_PROMPT,
    EXTRACTION_AGENT_USER_PROMPT,
)
from bilbul.agents.extraction.types import ExtractionAgentOutput, ExtractionResponseSchema
from bilbul.config import settings
from bilbul.split.errors import ExternalServiceFailure, InvalidReceiptData

logger = logging.getLogger(__name__)

SERVICE_NAME = "extraction"
MAX_REDIRECTS = 5

IPAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]


def _guess_mime_type(image_base64: str) -> str:
    # Detect MIME type from the base64 magic bytes, default to jpeg
    if image_base64.startswith("iVBORw0KGgo"):
        return "image/png"
    if image_base64.startswith("R0lGOD"):
        return "image/gif"
    if image_base64.startswith("UklGR"):
        return "image/webp"
    return "image/jpeg"


def decode_data_url(photo_url: str) -> Tuple[str, bytes]:
    """
    Split a `data:<mime>;base64,<payload>` URL into (mime_type, bytes).

    Raises:
        InvalidReceiptData: If the URL is not a base64 image data URL
    """
    header, sep, payload = photo_url.partition(",")
    if not sep or not header.endswith(";base64"):
        raise InvalidReceiptData("Receipt image must be a base64 data URL.")

    # Drop media type parameters such as ;name=receipt.png
    mime_type = header[len("data:"):-len(";base64")].split(";")[0].strip()
    mime_type = mime_type or _guess_mime_type(payload)
    if not mime_type.startswith("image/"):
        raise InvalidReceiptData("File must be an image (JPEG, PNG, etc.)")

    try:
        data = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError):
        raise InvalidReceiptData("Receipt image could not be decoded.")
    return mime_type, data


async def _resolve_addresses(host: str) -> List[IPAddress]:
    try:
        return [ipaddress.ip_address(host)]
    except ValueError:
        pass

    loop = asyncio.get_running_loop()
    try:
        infos = await loop.getaddrinfo(host, None)
    except socket.gaierror as e:
        raise httpx.ConnectError(f"Could not resolve host {host}") from e
    # IPv6 sockaddrs may carry a %scope suffix
    return [ipaddress.ip_address(str(info[4][0]).split("%")[0]) for info in infos]


async def _reject_internal_host(request: httpx.Request) -> None:
    """Request hook: refuse loopback, private and link-local targets, redirects included."""
    for address in await _resolve_addresses(request.url.host):
        if (
            address.is_private
            or address.is_loopback
            or address.is_link_local
            or address.is_reserved
            or address.is_multicast
            or address.is_unspecified
        ):
            logger.warning(f"Refused receipt image download from internal host {request.url.host}")
            raise InvalidReceiptData("Receipt image URL must point to a public host.")


async def _download_image(
    photo_url: str,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Tuple[str, bytes]:
    max_size_bytes = settings.MAX_IMAGE_SIZE_MB * 1024 * 1024
    too_large = f"Image must be smaller than {settings.MAX_IMAGE_SIZE_MB}MB"

    try:
        async with httpx.AsyncClient(
            timeout=settings.AGENT_TIMEOUT_SECONDS,
            transport=transport,
            follow_redirects=True,
            max_redirects=MAX_REDIRECTS,
            event_hooks={"request": [_reject_internal_host]},
        ) as client:
            async with client.stream("GET", photo_url) as response:
                response.raise_for_status()

                mime_type = response.headers.get("content-type", "").split(";")[0].strip()
                if not mime_type.startswith("image/"):
                    raise InvalidReceiptData("File must be an image (JPEG, PNG, etc.)")

                declared_size = response.headers.get("content-length", "")
                if declared_size.isdigit() and int(declared_size) > max_size_bytes:
                    logger.warning(f"Image too large: {declared_size} bytes declared")
                    raise InvalidReceiptData(too_large)

                image_bytes = bytearray()
                async for chunk in response.aiter_bytes():
                    image_bytes.extend(chunk)
                    if len(image_bytes) > max_size_bytes:
                        logger.warning("Image too large: download exceeded the size limit")
                        raise InvalidReceiptData(too_large)
    except (httpx.HTTPError, httpx.InvalidURL) as e:
        logger.error(f"Failed to download receipt image: {e}")
        raise ExternalServiceFailure(SERVICE_NAME, "Could not download the receipt image.") from e

    return mime_type, bytes(image_bytes)


async def load_image(
    photo_url: str,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Tuple[str, bytes]:
    """
    Resolve a data URL or an http(s) URL to (mime_type, bytes).

    Hosted images are streamed and capped at MAX_IMAGE_SIZE_MB. Hosts that
    resolve to internal addresses are refused before connecting.
    `transport` replaces the network layer (tests use httpx.MockTransport).
    """
    if photo_url.startswith("data:"):
        return decode_data_url(photo_url)
    if photo_url.startswith(("http://", "https://")):
        return await _download_image(photo_url, transport)
    raise InvalidReceiptData("Receipt image must be a data URL or an http(s) URL.")


async def run_extraction_agent(photo_url: str) -> ExtractionAgentOutput:
    """
    Extract line items and total from a receipt photo using Gemini.

    Args:
        photo_url: Data URL (data:image/...;base64,...) or hosted http(s) URL

    Returns:
        Raw ExtractionAgentOutput ({"items": [...], "totalAmount": ...}).
        Shape and positivity are validated by the caller.

    Raises:
        InvalidReceiptData: If the photo URL is not a usable image
        ExternalServiceFailure: If Gemini fails or returns something that is not JSON

    Notes:
        - NOT an ADK agent: one prompt, one response, no tools
        - Never logs the image or the extracted receipt contents
        - Timeouts are enforced by the calling session
    """
    logger.info("ExtractionAgent invoked")

    mime_type, image_bytes = await load_image(photo_url)
    client = get_gemini_client(SERVICE_NAME)

    prompt_parts = [
        types.Part(text=EXTRACTION_AGENT_USER_PROMPT),
        types.Part(inline_data=types.Blob(mime_type=mime_type, data=image_bytes)),
    ]

    config = types.GenerateContentConfig(
        system_instruction=EXTRACTION_AGENT_SYSTEM_PROMPT,
        temperature=0.0,  # Deterministic for structured extraction
        response_mime_type="application/json",
        response_schema=ExtractionResponseSchema,
    )

    try:
        response = await client.aio.models.generate_content(
            model=settings.GEMINI_MODEL,
            contents=prompt_parts,  # type: ignore
            config=config,
        )
    except Exception as e:
        logger.error(f"ExtractionAgent error: {e}", exc_info=True)
        raise ExternalServiceFailure(
            SERVICE_NAME, "Failed to process the receipt image. Please try again."
        ) from e

    response_text = (response.text or "").strip()
    if not response_text:
        logger.error("No response from model")
        raise ExternalServiceFailure(
            SERVICE_NAME,
            "Failed to extract receipt data. Please make sure you uploaded a clear receipt image.",
        )

    try:
        result = json.loads(response_text)
    except json.JSONDecodeError as e:
        logger.error(f"Failed to parse JSON response: {e}")
        raise ExternalServiceFailure(SERVICE_NAME, "Failed to parse model response.") from e

    if not isinstance(result, dict):
        raise ExternalServiceFailure(SERVICE_NAME, "Model returned an unexpected response.")

    items = result.get("items")
    logger.info(
        f"ExtractionAgent completed: items={len(items) if isinstance(items, list) else 0}"
    )

    output: ExtractionAgentOutput = {
        "items": items if isinstance(items, list) else [],
        "totalAmount": result.get("totalAmount"),  # type: ignore[typeddict-item]
    }
    return output
