import base64

from fastapi import APIRouter, File, UploadFile
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse
from loguru import logger

from ..deps import ParseBase64Request, ParseResponse
from ...services.invoice_pipeline import parse_invoice_image

router = APIRouter(tags=["parse"])


@router.post("/parse", response_model=ParseResponse)
async def parse_upload(file: UploadFile | None = File(None), compare: bool = True):
    """
    Parse a single uploaded invoice image.

    Accepts multipart/form-data with a "file" part. The parsed invoice is
    saved and, unless compare=false, priced against market rates.
    """
    if file is None:
        return JSONResponse(status_code=400, content={"success": False, "error": "No file uploaded"})

    content = await file.read()
    logger.info(
        "Parse request received",
        filename=file.filename,
        content_type=file.content_type,
        size_bytes=len(content),
    )

    result = await run_in_threadpool(
        parse_invoice_image,
        base64.b64encode(content).decode("ascii"),
        file.content_type,
        True,
        compare,
    )
    return ParseResponse(
        data=result["data"],
        invoice_id=result["invoice_id"],
        market_savings=result["market_savings"],
        equipment_with_rates=result["equipment_with_rates"],
    )


@router.post("/parse-base64", response_model=ParseResponse)
async def parse_base64(req: ParseBase64Request):
    """
    Parse an invoice sent as base64 JSON.

    Example request:
    {
        "base64Image": "iVBORw0KGgo...",
        "mimeType": "image/jpeg"
    }

    Returns the normalized invoice and the raw model reply. Nothing is
    stored unless "save": true is sent.
    """
    if not req.base64_image:
        return JSONResponse(status_code=400, content={"success": False, "error": "No image provided"})

    logger.info(
        "Base64 parse request received",
        mime_type=req.mime_type,
        image_b64_chars=len(req.base64_image),
        save=req.save,
    )

    result = await run_in_threadpool(
        parse_invoice_image,
        req.base64_image,
        req.mime_type,
        req.save,
        req.save,
    )
    return ParseResponse(
        data=result["data"],
        raw_response=result["raw_response"],
        invoice_id=result["invoice_id"],
        market_savings=result["market_savings"],
        equipment_with_rates=result["equipment_with_rates"],
    )
