"""
Client-side orchestration of PDF to Word conversions.
Provides the gateway interfaces, a `requests` adapter for the conversion
service and the session controller that validates, uploads, polls and
downloads, so front-ends (Streamlit, CLI or others) share the same logic.
"""

from .adapters import DirectorySaver, MemorySaver, RequestsConversionGateway
from .errors import (
    CLASSIFICATION_RULES,
    ERROR_MESSAGES,
    ClassifiedError,
    ConversionFailure,
    ErrorCode,
    Severity,
    TransportError,
    classify,
    explain_job_failure,
)
from .interfaces import ConversionGateway, FileSaver
from .models import CandidateFile, Conversion, ConversionStatus, ConversionType, SessionState
from .service import STATUS_LABELS, SessionController, processing_hint
from .validation import ValidationResult, validate
