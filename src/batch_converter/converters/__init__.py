from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict

from ..config import ToolsConfig
from ..models import ConversionJob
from ..utils import normalize_extension
from .base import Converter, ExternalToolConverter
from .byml import byml_to_yaml
from .qoa import qoaconv
from .vgaudio import vgaudio

ConverterFactory = Callable[[ToolsConfig], Converter]


@dataclass(frozen=True, slots=True)
class ConverterSpec:
    name: str
    source_extension: str
    target_extension: str
    factory: ConverterFactory

    def build(self, tools: ToolsConfig | None = None) -> Converter:
        return self.factory(tools or ToolsConfig())

    def job(self, root: Path, tools: ToolsConfig | None = None) -> ConversionJob:
        return ConversionJob(
            root=root,
            pattern=self.source_extension,
            target_extension=self.target_extension,
            convert=self.build(tools),
            name=self.name,
        )


_REGISTRY: Dict[str, ConverterSpec] = {}


def register(source: str, target: str, factory: ConverterFactory) -> ConverterSpec:
    source_ext = normalize_extension(source)
    target_ext = normalize_extension(target)
    name = f"{source_ext[1:]}2{target_ext[1:]}"
    spec = ConverterSpec(name, source_ext, target_ext, factory)
    _REGISTRY[name] = spec
    return spec


register("adx", "wav", vgaudio)
register("adx", "hca", vgaudio)
register("hca", "wav", vgaudio)
register("hca", "adx", vgaudio)
register("hca", "dsp", vgaudio)
register("dsp", "wav", vgaudio)
register("dsp", "adx", vgaudio)
register("dsp", "hca", vgaudio)
register("idsp", "wav", vgaudio)
register("brwav", "wav", vgaudio)
register("wav", "adx", vgaudio)
register("wav", "idsp", vgaudio)
register("qoa", "wav", qoaconv)
register("wav", "qoa", qoaconv)
register("byml", "yml", byml_to_yaml)


def get_converter(name: str) -> ConverterSpec:
    spec = _REGISTRY.get(name.lower())
    if spec is None:
        raise KeyError(f"No converter registered for {name}")
    return spec


def available_converters() -> list[ConverterSpec]:
    return [_REGISTRY[name] for name in sorted(_REGISTRY)]


__all__ = [
    "Converter",
    "ConverterFactory",
    "ConverterSpec",
    "ExternalToolConverter",
    "available_converters",
    "get_converter",
    "register",
]
