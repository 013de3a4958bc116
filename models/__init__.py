"""LLM provider abstraction for invoicesync.

Provides a uniform invoice-extraction interface across different providers:
- MistralLLM: Mistral AI (default)
- OpenAILLM: OpenAI GPT-4o

Usage:
    from models import create_llm

    llm = create_llm("mistral")
    extraction = llm.extract_invoice(content, "application/pdf", "inv.pdf")
"""

from .base import (
    LLM,
    LLMError,
    LLMConfigError,
    ExtractionError,
    InvoiceExtraction,
    BankAccountInfo,
    INVOICE_SCHEMA,
    MAX_FILE_SIZE_MB,
    REQUEST_TIMEOUT,
)
from .mistral import MistralLLM
from .openai import OpenAILLM


def create_llm(provider: str = "mistral") -> LLM:
    """Create an LLM instance for the specified provider.

    Args:
        provider: LLM provider name ("mistral" or "openai")

    Returns:
        LLM instance for the specified provider

    Raises:
        ValueError: If provider is not recognized
        LLMConfigError: If the provider's API key is not set
    """
    provider = provider.lower()

    if provider == "mistral":
        return MistralLLM()
    elif provider == "openai":
        return OpenAILLM()
    else:
        raise ValueError(
            f"Unknown LLM provider: {provider}. "
            "Must be 'mistral' or 'openai'"
        )


__all__ = [
    'LLM',
    'LLMError',
    'LLMConfigError',
    'ExtractionError',
    'InvoiceExtraction',
    'BankAccountInfo',
    'INVOICE_SCHEMA',
    'MAX_FILE_SIZE_MB',
    'REQUEST_TIMEOUT',
    'MistralLLM',
    'OpenAILLM',
    'create_llm',
]
