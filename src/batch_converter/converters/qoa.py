from __future__ import annotations

from ..config import ToolsConfig
from .base import ExternalToolConverter


def qoaconv(tools: ToolsConfig) -> ExternalToolConverter:
    # qoaconv picks the direction from the file extensions
    return ExternalToolConverter(
        executable=tools.qoaconv,
        arguments=("{input}", "{output}"),
        timeout_s=tools.timeout_s,
    )
