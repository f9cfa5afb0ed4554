"""
Exceptions raised by the parse pipeline and mapped to HTTP responses in src.api.main.
"""


class InvoiceParseError(Exception):
    """The model reply could not be turned into a JSON object."""

    def __init__(self, raw: str | None, message: str = "Failed to parse invoice"):
        super().__init__(message)
        self.raw = raw


class ExtractionError(Exception):
    """The vision/LLM API call failed."""


class AssistantUnavailableError(Exception):
    """Chat was requested but no OpenAI key is configured."""


class InvoiceStoreError(Exception):
    """A call to the invoice store (table or stored procedure) failed."""


class InvoiceNotFoundError(Exception):
    def __init__(self, invoice_id):
        super().__init__(f"Invoice {invoice_id} not found")
        self.invoice_id = invoice_id


class AssistantError(Exception):
    """The chat completion request failed."""
