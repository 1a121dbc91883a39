"""
PDF to Word conversion client package.

This package provides the client-side session orchestrator used to submit a
PDF to the remote conversion service, follow the job to completion and fetch
the resulting Word document. Front-ends live in `pdf2word.streamlit_app` and
`pdf2word.cli`.
"""

__all__ = ["__version__"]

__version__ = "0.1.0"
