"""Tests for parsing the model's JSON reply into an InvoiceExtraction."""

import pytest

from models import LLM, ExtractionError, create_llm, LLMConfigError


class ParsingLLM(LLM):
    """Minimal provider exposing the shared parsing helpers."""

    @property
    def name(self) -> str:
        return "parsing"

    def extract_invoice(self, content, mime_type, file_name="invoice.pdf"):
        raise NotImplementedError


@pytest.fixture
def llm():
    return ParsingLLM()


class TestParseExtractionResponse:

    def test_required_fields_only(self, llm):
        result = llm._parse_extraction_response(
            '{"vendorName": "Acme", "totalAmount": 5000, "dueDate": "2024-08-01"}'
        )
        assert result.vendor_name == "Acme"
        assert result.total_amount == 5000
        assert result.due_date == "2024-08-01"
        assert result.currency is None
        assert result.invoice_number is None
        assert result.bank_account is None

    def test_all_fields(self, llm):
        result = llm._parse_extraction_response("""{
            "vendorName": "株式会社サンプル",
            "invoiceNumber": "INV-42",
            "totalAmount": 110000,
            "currency": "JPY",
            "dueDate": "2024-09-30",
            "issueDate": "2024-08-31",
            "category": "Software",
            "notes": "Annual license",
            "bankAccount": {
                "bankName": "みずほ銀行",
                "branchName": "渋谷支店",
                "accountType": "普通",
                "accountNumber": "1234567",
                "accountName": "カ）サンプル"
            }
        }""")
        assert result.invoice_number == "INV-42"
        assert result.issue_date == "2024-08-31"
        assert result.category == "Software"
        assert result.notes == "Annual license"
        assert result.bank_account.bank_name == "みずほ銀行"
        assert result.bank_account.account_number == "1234567"

    def test_code_fence_is_stripped(self, llm):
        result = llm._parse_extraction_response(
            '```json\n{"vendorName": "Acme", "totalAmount": 1, "dueDate": "2024-01-01"}\n```'
        )
        assert result.vendor_name == "Acme"

    def test_amount_string_with_symbols(self, llm):
        result = llm._parse_extraction_response(
            '{"vendorName": "Acme", "totalAmount": "¥5,000", "dueDate": "2024-01-01"}'
        )
        assert result.total_amount == 5000.0

    def test_empty_bank_account_is_none(self, llm):
        result = llm._parse_extraction_response(
            '{"vendorName": "Acme", "totalAmount": 1, "dueDate": "2024-01-01",'
            ' "bankAccount": {"bankName": "", "accountNumber": null}}'
        )
        assert result.bank_account is None

    @pytest.mark.parametrize("response", [
        "",
        "   ",
        "The vendor is Acme and the total is 5000 yen.",
        "[1, 2, 3]",
        '{"vendorName": "Acme", "totalAmount": 5000}',
        '{"vendorName": "", "totalAmount": 5000, "dueDate": "2024-08-01"}',
        '{"vendorName": "Acme", "totalAmount": "n/a", "dueDate": "2024-08-01"}',
        '{"vendorName": "Acme", "totalAmount": true, "dueDate": "2024-08-01"}',
    ])
    def test_unusable_responses_raise(self, llm, response):
        with pytest.raises(ExtractionError):
            llm._parse_extraction_response(response)


class TestFileSize:

    def test_oversized_file_raises(self, llm, monkeypatch):
        monkeypatch.setattr("models.base.MAX_FILE_SIZE_MB", 0)
        with pytest.raises(ExtractionError, match="limit"):
            llm._check_file_size(b"x")


class TestCreateLLM:

    def test_unknown_provider(self):
        with pytest.raises(ValueError):
            create_llm("claude")

    def test_missing_key_is_config_error(self, monkeypatch):
        monkeypatch.delenv("MISTRAL_API_KEY", raising=False)
        with pytest.raises(LLMConfigError):
            create_llm("mistral")
