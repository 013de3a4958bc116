"""OpenAI LLM provider.

Uses the OpenAI chat completions API with a JSON-schema response format
for invoice extraction.
"""

import base64
import os

from openai import OpenAI

from .base import (
    LLM, LLMConfigError, LLMError, InvoiceExtraction,
    INVOICE_SCHEMA,
    REQUEST_TIMEOUT,
    build_extraction_prompt,
)


class OpenAILLM(LLM):
    """OpenAI implementation for invoice extraction.

    Uses:
    - gpt-4o (override with OPENAI_MODEL) with vision input
    - Base64 data URLs for PDFs and images
    - Structured output constrained to INVOICE_SCHEMA
    """

    def __init__(self) -> None:
        """Initialize OpenAI client.

        Raises:
            LLMConfigError: If OPENAI_API_KEY environment variable is not set
        """
        if not os.environ.get("OPENAI_API_KEY"):
            raise LLMConfigError("OPENAI_API_KEY is not set")
        self.client = OpenAI(timeout=REQUEST_TIMEOUT)
        self.model = os.environ.get("OPENAI_MODEL", "gpt-4o")

    @property
    def name(self) -> str:
        return "openai"

    def extract_invoice(
        self,
        content: bytes,
        mime_type: str,
        file_name: str = "invoice.pdf"
    ) -> InvoiceExtraction:
        """Extract invoice data by sending the document inline as base64."""
        self._check_file_size(content)

        data_url = f"data:{mime_type};base64,{base64.b64encode(content).decode('utf-8')}"
        if mime_type.startswith("image/"):
            document_part = {"type": "image_url", "image_url": {"url": data_url}}
        else:
            document_part = {
                "type": "file",
                "file": {"filename": file_name, "file_data": data_url},
            }

        messages = [
            {
                "role": "user",
                "content": [
                    {"type": "text", "text": build_extraction_prompt()},
                    document_part,
                ]
            }
        ]

        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=messages,
                response_format={
                    "type": "json_schema",
                    "json_schema": {"name": "invoice", "schema": INVOICE_SCHEMA},
                },
            )
            response_text = response.choices[0].message.content
        except Exception as e:
            raise LLMError(f"OpenAI API error: {e}")

        return self._parse_extraction_response(response_text)
