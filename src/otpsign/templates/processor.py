"""
HTML template population.

Placeholders are the identity field names themselves; every occurrence
of each key is replaced literally, with no escaping and no nesting.
"""

from pathlib import Path
from typing import Any, Mapping, Optional, Union

from ..errors import TemplateError
from .cache import TemplateCache


def replace_placeholders(content: str, field_map: Mapping[str, Any]) -> str:
    """
    Replace every key of field_map found in content, in mapping order.

    Non-string values are rendered with str().
    """
    result = content
    for placeholder, value in field_map.items():
        if not placeholder:
            continue
        replacement = value if isinstance(value, str) else str(value)
        result = result.replace(placeholder, replacement)
    return result


class TemplateProcessor:
    """
    Populates templates read through a shared TemplateCache.
    """

    def __init__(self, cache: Optional[TemplateCache] = None):
        self.cache = cache if cache is not None else TemplateCache()

    def populate(
        self,
        template_path: Union[str, Path],
        field_map: Mapping[str, Any],
        use_cache: bool = True,
    ) -> str:
        """
        Read a template and substitute its placeholders.

        Raises:
            TemplateError: If the template cannot be read
        """
        content = self.cache.get(template_path, use_cache=use_cache)
        return self.populate_string(content, field_map)

    def populate_string(self, content: str, field_map: Mapping[str, Any]) -> str:
        return replace_placeholders(content, field_map)

    def render_to_file(
        self,
        template_path: Union[str, Path],
        field_map: Mapping[str, Any],
        output_path: Union[str, Path],
        use_cache: bool = True,
    ) -> Path:
        """
        Populate a template and write the result to output_path.

        Returns:
            The written path

        Raises:
            TemplateError: If reading or writing fails
        """
        populated = self.populate(template_path, field_map, use_cache=use_cache)
        target = Path(output_path)
        try:
            target.write_text(populated, encoding='utf-8')
        except OSError as e:
            raise TemplateError(f"Cannot write populated template {target}: {e}")
        return target
