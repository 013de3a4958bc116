"""Mistral AI LLM provider.

Uses Mistral AI API for invoice extraction.
"""

import base64
import os
from typing import Tuple

from mistralai import Mistral

from .base import (
    LLM, LLMConfigError, LLMError, InvoiceExtraction,
    REQUEST_TIMEOUT,
    build_extraction_prompt,
)


class MistralLLM(LLM):
    """Mistral AI implementation for invoice extraction.

    Uses:
    - mistral-small-latest (override with MISTRAL_MODEL) in JSON mode
    - Inline data URLs for images
    - File upload API + signed URL for PDFs
    """

    def __init__(self) -> None:
        """Initialize Mistral client.

        Raises:
            LLMConfigError: If MISTRAL_API_KEY environment variable is not set
        """
        api_key = os.environ.get("MISTRAL_API_KEY")
        if not api_key:
            raise LLMConfigError("MISTRAL_API_KEY is not set")
        self.client = Mistral(api_key=api_key, timeout_ms=REQUEST_TIMEOUT * 1000)
        self.model = os.environ.get("MISTRAL_MODEL", "mistral-small-latest")

    @property
    def name(self) -> str:
        return "mistral"

    def extract_invoice(
        self,
        content: bytes,
        mime_type: str,
        file_name: str = "invoice.pdf"
    ) -> InvoiceExtraction:
        """Extract invoice data from an image or PDF."""
        self._check_file_size(content)

        uploaded_id = None
        if mime_type.startswith("image/"):
            encoded = base64.b64encode(content).decode("utf-8")
            document_part = {
                "type": "image_url",
                "image_url": f"data:{mime_type};base64,{encoded}",
            }
        else:
            uploaded_id, signed_url = self._upload_document(content, file_name)
            document_part = {
                "type": "document_url",
                "document_url": signed_url,
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
            response = self.client.chat.complete(
                model=self.model,
                messages=messages,
                response_format={"type": "json_object"},
            )
            response_text = response.choices[0].message.content
        except Exception as e:
            raise LLMError(f"Mistral API error: {e}")
        finally:
            if uploaded_id:
                self._delete_document(uploaded_id)

        return self._parse_extraction_response(response_text)

    def _upload_document(self, content: bytes, file_name: str) -> Tuple[str, str]:
        """Upload a PDF to Mistral. Returns (file id, signed URL)."""
        try:
            upload_response = self.client.files.upload(
                file={
                    "file_name": file_name or "invoice.pdf",
                    "content": content,
                },
                purpose="ocr"
            )
        except Exception as e:
            raise LLMError(f"Failed to upload document to Mistral: {e}")

        try:
            signed_url = self.client.files.get_signed_url(file_id=upload_response.id)
        except Exception as e:
            self._delete_document(upload_response.id)
            raise LLMError(f"Failed to upload document to Mistral: {e}")
        return upload_response.id, signed_url.url

    def _delete_document(self, file_id: str) -> None:
        """Remove an uploaded PDF. Failure only warns."""
        try:
            self.client.files.delete(file_id=file_id)
        except Exception as e:
            from invoicesync import InvoiceSync
            InvoiceSync.print_right(
                f"[yellow]Warning: could not delete uploaded file {file_id}: {e}[/yellow]"
            )
