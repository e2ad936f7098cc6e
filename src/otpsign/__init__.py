"""
otpsign - SMS-OTP Simple Electronic Signature Pipeline

Populates an HTML agreement with the signer's identity, renders it to
PDF, confirms the signature with a one-time code delivered by SMS, binds
the document to the signing metadata with a composite SHA-256 hash and
stamps every page.

Main exports:
- SigningPipeline: Orchestrates one signature end to end
- RenderWorker: Serializes rendering onto one dedicated thread
- LogSink: Single-writer append-only service log
- HashBinder: Composite document hash
- TemplateCache: Bounded template content cache
"""

from .audit import LogSink
from .errors import *
from .hashing import HashBinder
from .models import Identity, SigningOutcome
from .pipeline import SigningPipeline
from .render import RenderWorker
from .result import Result
from .settings import ServiceConfig, load_config
from .templates import TemplateCache

__version__ = "0.1.0"

__all__ = [
    'SigningPipeline',
    'RenderWorker',
    'LogSink',
    'HashBinder',
    'TemplateCache',
    'Identity',
    'SigningOutcome',
    'Result',
    'ErrorCode',
    'ServiceConfig',
    'load_config',
]
