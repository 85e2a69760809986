"""Lead-capture runtime for insurance-brokerage landing pages.

This package provides:
- A multi-step form wizard with per-field validation and consent collection
- A submission pipeline writing contact, consent and project records
- Fire-and-forget tracking events for analytics collectors
- An ingestion handler turning email-provider webhooks into interactions

Basic usage:
    >>> from leadcapture import FormWizard, default_quote_form
    >>> wizard = FormWizard(default_quote_form(), store=store)  # doctest: +SKIP
    >>> state = wizard.initialize()  # doctest: +SKIP
    >>> state.step_index  # doctest: +SKIP
    0
"""

__version__ = "0.1.0"
__author__ = "Lead Capture Team"

# Version info
VERSION = (0, 1, 0)

# Core exports
from leadcapture.forms import FormDefinition, default_quote_form
from leadcapture.runtime import FormWizard
from leadcapture.submission import CaptureContext, ClientContext, Submission

# Package metadata
__all__ = [
    "__version__",
    "VERSION",
    "FormDefinition",
    "default_quote_form",
    "FormWizard",
    "CaptureContext",
    "ClientContext",
    "Submission",
]
