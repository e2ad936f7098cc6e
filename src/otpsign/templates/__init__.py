"""Template caching and population for otpsign."""

from .cache import TemplateCache
from .processor import TemplateProcessor, replace_placeholders

__all__ = [
    'TemplateCache',
    'TemplateProcessor',
    'replace_placeholders',
]
