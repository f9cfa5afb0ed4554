import json
from loguru import logger
from openai import OpenAIError
from .openai_client import get_openai_client
from .prompts import INVOICE_EXTRACTION_PROMPT
from ..core.config import settings
from ..core.errors import ExtractionError

DEFAULT_MIME_TYPE = "image/png"


def extract_invoice(image_b64: str, mime_type: str | None = None) -> str:
    """
    Send an invoice image to the vision model and return its raw reply text.

    The reply is expected to be JSON but is not parsed here; see json_repair.
    """
    mime_type = mime_type or DEFAULT_MIME_TYPE

    # Check if OpenAI is configured
    if settings.openai_configured:
        logger.info(
            "Using OpenAI vision for invoice extraction",
            model=settings.openai_model,
            mime_type=mime_type,
            image_b64_chars=len(image_b64),
        )

        try:
            client = get_openai_client()
            response = client.chat.completions.create(
                model=settings.openai_model,
                messages=[
                    {
                        "role": "user",
                        "content": [
                            {"type": "text", "text": INVOICE_EXTRACTION_PROMPT},
                            {
                                "type": "image_url",
                                "image_url": {"url": f"data:{mime_type};base64,{image_b64}"},
                            },
                        ],
                    }
                ],
                max_tokens=settings.openai_max_tokens,
            )
        except OpenAIError as e:
            logger.error(f"OpenAI extraction failed: {str(e)}")
            raise ExtractionError(f"Invoice extraction failed: {str(e)}") from e

        if not response.choices:
            raise ExtractionError("Invoice extraction failed: model returned no choices")

        content = response.choices[0].message.content or ""
        logger.info(
            "Received extraction reply",
            finish_reason=response.choices[0].finish_reason,
            reply_chars=len(content),
        )
        return content

    logger.warning(
        "OpenAI not configured - using MOCK extraction. "
        "Set OPENAI_API_KEY to use real extraction."
    )
    return json.dumps(_mock_invoice(has_image=bool(image_b64)))


def _mock_invoice(has_image: bool) -> dict:
    return {
        "vendor": "Sunbelt Rentals",
        "invoice_number": "INV-58213",
        "invoice_date": "2025-09-30",
        "due_date": "2025-10-30",
        "po_number": "PO-1187",
        "customer_name": "Lakeshore Builders",
        "job_site": "1200 W 9th St, Cleveland, OH",
        "rental_start": "2025-09-02",
        "rental_end": "2025-09-30",
        "equipment": [
            {
                "description": "19' Electric Scissor Lift",
                "serial_number": "SL19-4471",
                "rental_days": 28,
                "day_rate": 125.00,
                "week_rate": 325.00,
                "four_week_rate": 650.00,
                "amount": 650.00,
            }
        ],
        "rental_subtotal": 650.00,
        "freight": 0.00,
        "meter_charges": 0.00,
        "fees": {
            "delivery": 95.00,
            "pickup": 95.00,
            "environmental": 19.50,
            "damage_waiver": 97.50,
        },
        "fees_total": 307.00,
        "tax": 56.42,
        "total": 1013.42,
        "confidence": "high" if has_image else "low",
    }
