from __future__ import annotations

from ..config import ToolsConfig
from .base import ExternalToolConverter


def vgaudio(tools: ToolsConfig) -> ExternalToolConverter:
    """ADX, HCA, DSP, IDSP, BRWAV and WAV transcoding through VGAudioCli."""

    return ExternalToolConverter(
        executable=tools.vgaudio,
        arguments=("-c", "-i", "{input}", "-o", "{output}"),
        timeout_s=tools.timeout_s,
    )
