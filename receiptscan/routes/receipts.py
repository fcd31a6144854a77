import logging
from functools import lru_cache

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import PlainTextResponse
from starlette.concurrency import run_in_threadpool

from receiptscan.receipt import ExtractionError, ReceiptExtractor, get_receipt_extractor

logger = logging.getLogger("receiptscan")
router = APIRouter()

MAX_FILE_SIZE = 10 * 1024 * 1024  # 10 MB
JPEG_CONTENT_TYPE = "image/jpeg"


@lru_cache
def _shared_extractor() -> ReceiptExtractor:
    return get_receipt_extractor()


def get_extractor() -> ReceiptExtractor:
    try:
        return _shared_extractor()
    except ValueError as e:
        logger.error(f"Receipt extraction config error: {e}")
        raise HTTPException(status_code=503, detail="Receipt scanning is not available")


@router.post("/receipt")
async def scan_receipt(request: Request):
    content_type = request.headers.get("content-type", "").split(";")[0].strip().lower()
    if content_type != JPEG_CONTENT_TYPE:
        return PlainTextResponse("Content-Type must be image/jpeg", status_code=400)

    image_bytes = await request.body()
    if len(image_bytes) == 0:
        return PlainTextResponse("Empty request body", status_code=400)
    if len(image_bytes) > MAX_FILE_SIZE:
        return PlainTextResponse("Image too large. Maximum size is 10 MB.", status_code=400)

    # Resolved after validation so a bad upload is a 400 even without a configured model
    extractor = request.app.dependency_overrides.get(get_extractor, get_extractor)()

    try:
        # Retries sleep, so keep them off the event loop
        result = await run_in_threadpool(extractor.extract, image_bytes, content_type)
    except ExtractionError as e:
        logger.error(f"Receipt extraction failed: {e}", exc_info=True)
        return PlainTextResponse("Failed to extract receipt data", status_code=500)
    except Exception as e:
        logger.error(f"Receipt extraction crashed: {e}", exc_info=True)
        return PlainTextResponse("Internal server error", status_code=500)

    logger.info(
        "Receipt scanned",
        extra={"extra_data": {"image_bytes": len(image_bytes), "shop": result.shop}},
    )
    return result.model_dump()


@router.api_route("/receipt", methods=["GET", "PUT", "PATCH", "DELETE", "OPTIONS"], include_in_schema=False)
def receipt_method_not_allowed():
    return PlainTextResponse("Method not allowed", status_code=405, headers={"Allow": "POST"})
