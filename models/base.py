"""Base classes for LLM providers.

This module defines the abstract interface that all LLM backends must implement,
the structured-output schema requested from the model, and the shared parsing
of its JSON reply.
"""

import json
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Optional


class LLMError(Exception):
    """Base exception for LLM operations."""
    pass


class LLMConfigError(LLMError):
    """The provider is not configured (e.g. missing API key)."""
    pass


class ExtractionError(LLMError):
    """The model replied, but not with a usable invoice."""
    pass


@dataclass
class BankAccountInfo:
    """Bank transfer details printed on an invoice. All fields optional."""
    bank_name: Optional[str] = None
    branch_name: Optional[str] = None
    account_type: Optional[str] = None
    account_number: Optional[str] = None
    account_name: Optional[str] = None

    def is_empty(self) -> bool:
        return not any((self.bank_name, self.branch_name, self.account_type,
                        self.account_number, self.account_name))


@dataclass
class InvoiceExtraction:
    """Result of extracting an invoice document.

    Attributes:
        vendor_name: Issuer of the invoice (required)
        total_amount: Total amount due (required)
        due_date: Payment due date, YYYY-MM-DD (required)
        invoice_number: Invoice number as printed
        currency: ISO-like currency code
        issue_date: Issue date, YYYY-MM-DD
        category: Free-text classification (Software, Utility, Rent, ...)
        notes: Anything else worth keeping
        bank_account: Transfer destination, if printed
    """
    vendor_name: str
    total_amount: float
    due_date: str
    invoice_number: Optional[str] = None
    currency: Optional[str] = None
    issue_date: Optional[str] = None
    category: Optional[str] = None
    notes: Optional[str] = None
    bank_account: Optional[BankAccountInfo] = None


# Maximum file size for extraction (50MB)
MAX_FILE_SIZE_MB = 50

# Seconds allowed for one provider API call
REQUEST_TIMEOUT = 120

REQUIRED_FIELDS = ("vendorName", "totalAmount", "dueDate")

INVOICE_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "vendorName": {"type": "string"},
        "invoiceNumber": {"type": "string"},
        "totalAmount": {"type": "number"},
        "currency": {"type": "string"},
        "dueDate": {"type": "string", "description": "YYYY-MM-DD format"},
        "issueDate": {"type": "string", "description": "YYYY-MM-DD format"},
        "category": {"type": "string", "description": "e.g., Software, Utility, Marketing, Rent"},
        "notes": {"type": "string"},
        "bankAccount": {
            "type": "object",
            "properties": {
                "bankName": {"type": "string"},
                "branchName": {"type": "string"},
                "accountType": {"type": "string", "description": "e.g. 普通, 当座"},
                "accountNumber": {"type": "string"},
                "accountName": {"type": "string"},
            },
        },
    },
    "required": list(REQUIRED_FIELDS),
}


# Invoice extraction prompt
INVOICE_EXTRACTION_PROMPT = """Extract detailed invoice and bank transfer information (振込先情報) from this document.
Especially focus on Japanese bank details like 銀行名, 支店名, 口座番号, 口座名義.

Respond with a single JSON object and nothing else. Use this JSON schema:
{schema}

Some specific guidelines:
- vendorName, totalAmount and dueDate are required. Leave out any other field you cannot find.
- totalAmount is the total amount due as a plain number, without currency symbols or separators.
- Dates use the YYYY-MM-DD format.
- currency is a three-letter code such as JPY or USD.
"""


def build_extraction_prompt() -> str:
    """Build the full extraction prompt including the JSON schema."""
    return INVOICE_EXTRACTION_PROMPT.format(
        schema=json.dumps(INVOICE_SCHEMA, ensure_ascii=False, indent=2)
    )


def _clean_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    if not text or text.lower() in ("none", "null", "n/a"):
        return None
    return text


def _parse_amount(value: Any) -> float:
    """Parse a numeric amount, tolerating '5,000' or '¥5,000' strings."""
    if isinstance(value, bool):
        raise ExtractionError(f"Invalid totalAmount: {value!r}")
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        cleaned = re.sub(r'[^\d.\-]', '', value)
        try:
            return float(cleaned)
        except ValueError:
            pass
    raise ExtractionError(f"Invalid totalAmount: {value!r}")


class LLM(ABC):
    """Abstract base class for LLM providers.

    All LLM providers (Mistral, OpenAI) implement this interface for
    invoice extraction.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider name (e.g., 'mistral', 'openai')."""
        pass

    @abstractmethod
    def extract_invoice(
        self,
        content: bytes,
        mime_type: str,
        file_name: str = "invoice.pdf"
    ) -> InvoiceExtraction:
        """Extract structured invoice data from a document.

        Args:
            content: Raw bytes of the PDF or image
            mime_type: Mime type of the content (application/pdf, image/png, ...)
            file_name: Original filename, passed along to the model

        Returns:
            InvoiceExtraction with the required fields populated

        Raises:
            LLMError: If the model call fails
            ExtractionError: If the reply is not usable or the file is too large
        """
        pass

    # =========================================================================
    # Helper methods (shared by all implementations)
    # =========================================================================

    def _check_file_size(self, content: bytes) -> None:
        """Validate content size is under the limit.

        Raises:
            ExtractionError: If the content exceeds the size limit
        """
        if len(content) > MAX_FILE_SIZE_MB * 1024 * 1024:
            raise ExtractionError(
                f"File exceeds {MAX_FILE_SIZE_MB}MB limit "
                f"({len(content) / 1024 / 1024:.1f}MB)"
            )

    def _parse_extraction_response(self, response: Optional[str]) -> InvoiceExtraction:
        """Parse the model's JSON reply into an InvoiceExtraction.

        Accepts a bare JSON object or one wrapped in a ```json fence.

        Raises:
            ExtractionError: If the reply is not a JSON object or required
                fields are missing
        """
        if not response or not response.strip():
            raise ExtractionError("Empty response from model")

        text = response.strip()
        fence = re.match(r'^```(?:json)?\s*(.*?)\s*```$', text, re.DOTALL)
        if fence:
            text = fence.group(1)

        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise ExtractionError(f"Could not parse invoice data: {e}")

        if not isinstance(data, dict):
            raise ExtractionError("Could not parse invoice data: expected a JSON object")

        missing = [f for f in REQUIRED_FIELDS if data.get(f) in (None, "")]
        if missing:
            raise ExtractionError(f"Missing required fields: {', '.join(missing)}")

        vendor_name = _clean_str(data["vendorName"])
        due_date = _clean_str(data["dueDate"])
        if not vendor_name or not due_date:
            raise ExtractionError("Missing required fields: vendorName or dueDate")

        return InvoiceExtraction(
            vendor_name=vendor_name,
            total_amount=_parse_amount(data["totalAmount"]),
            due_date=due_date,
            invoice_number=_clean_str(data.get("invoiceNumber")),
            currency=_clean_str(data.get("currency")),
            issue_date=_clean_str(data.get("issueDate")),
            category=_clean_str(data.get("category")),
            notes=_clean_str(data.get("notes")),
            bank_account=self._parse_bank_account(data.get("bankAccount")),
        )

    def _parse_bank_account(self, data: Any) -> Optional[BankAccountInfo]:
        if not isinstance(data, dict):
            return None
        account = BankAccountInfo(
            bank_name=_clean_str(data.get("bankName")),
            branch_name=_clean_str(data.get("branchName")),
            account_type=_clean_str(data.get("accountType")),
            account_number=_clean_str(data.get("accountNumber")),
            account_name=_clean_str(data.get("accountName")),
        )
        return None if account.is_empty() else account
