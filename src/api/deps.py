from pydantic import BaseModel, ConfigDict, Field


class ParseBase64Request(BaseModel):
    """Request body for /parse-base64"""
    model_config = ConfigDict(populate_by_name=True)

    base64_image: str | None = Field(default=None, alias="base64Image")
    mime_type: str | None = Field(default=None, alias="mimeType")
    save: bool = False  # Persist and run the market comparison


class ParseResponse(BaseModel):
    success: bool = True
    data: dict
    raw_response: str | None = None
    invoice_id: int | str | None = None
    market_savings: float | None = None
    equipment_with_rates: list[dict] | None = None


class ChatRequest(BaseModel):
    message: str = Field(min_length=1)
    history: list[dict] = []


class ChatResponse(BaseModel):
    success: bool = True
    reply: str
    history: list[dict]
    tool_calls: list[str] = []
