"""
A small SVG scene graph.

Section builders append draw commands to named sections; the scene is
serialized once with lxml. Tests inspect the command lists directly.
"""
import re
from dataclasses import dataclass, field, fields
from typing import ClassVar, Dict, Iterator, List, Optional, Tuple

from lxml import etree

from ..exceptions import RenderError

SVG_NS = 'http://www.w3.org/2000/svg'
FONT_FAMILY = '-apple-system, BlinkMacSystemFont, Segoe UI, Helvetica, Arial, sans-serif'

_XML_INVALID_CHARS = re.compile('[\x00-\x08\x0b\x0c\x0e-\x1f]')


def format_coordinate(value) -> str:
    """Serialize a number without float noise: ``12.0`` -> ``12``, ``1/3`` -> ``0.33``."""
    if isinstance(value, float):
        if value.is_integer():
            return str(int(value))
        return f"{value:.2f}".rstrip('0').rstrip('.')
    return str(value)


class Node:
    """Base for draw commands. Field names map to SVG attributes."""
    tag: ClassVar[str] = ''
    _skip: ClassVar[Tuple[str, ...]] = ()

    def attributes(self) -> Dict[str, str]:
        attrs = {}
        for f in fields(self):
            if f.name in self._skip:
                continue
            value = getattr(self, f.name)
            if value is None:
                continue
            attrs[f.name.replace('_', '-')] = format_coordinate(value)
        return attrs


@dataclass(frozen=True)
class Rect(Node):
    tag: ClassVar[str] = 'rect'
    x: float
    y: float
    width: float
    height: float
    fill: str
    rx: Optional[float] = None
    stroke: Optional[str] = None
    stroke_width: Optional[float] = None
    opacity: Optional[float] = None


@dataclass(frozen=True)
class Circle(Node):
    tag: ClassVar[str] = 'circle'
    cx: float
    cy: float
    r: float
    fill: str
    stroke: Optional[str] = None
    stroke_width: Optional[float] = None
    stroke_dasharray: Optional[float] = None
    stroke_dashoffset: Optional[float] = None
    stroke_linecap: Optional[str] = None
    transform: Optional[str] = None


@dataclass(frozen=True)
class Line(Node):
    tag: ClassVar[str] = 'line'
    x1: float
    y1: float
    x2: float
    y2: float
    stroke: str
    stroke_width: Optional[float] = None
    stroke_dasharray: Optional[str] = None


@dataclass(frozen=True)
class Path(Node):
    tag: ClassVar[str] = 'path'
    d: str
    fill: str = 'none'
    stroke: Optional[str] = None
    stroke_width: Optional[float] = None
    stroke_linecap: Optional[str] = None
    stroke_linejoin: Optional[str] = None


@dataclass(frozen=True)
class Text(Node):
    tag: ClassVar[str] = 'text'
    _skip: ClassVar[Tuple[str, ...]] = ('content',)
    x: float
    y: float
    content: str
    font_size: float
    fill: str
    font_weight: Optional[str] = None
    text_anchor: Optional[str] = None
    transform: Optional[str] = None
    font_family: str = FONT_FAMILY


@dataclass(frozen=True)
class GradientStop:
    offset: str
    color: str
    opacity: float = 1


@dataclass(frozen=True)
class LinearGradient:
    id: str
    stops: Tuple[GradientStop, ...]
    x1: str = '0%'
    y1: str = '0%'
    x2: str = '100%'
    y2: str = '100%'


@dataclass
class Section:
    """A named, independently toggleable group of draw commands."""
    name: str
    top: float
    bottom: float = 0
    nodes: List[Node] = field(default_factory=list)

    def add(self, node: Node) -> Node:
        self.nodes.append(node)
        return node

    def find(self, node_type) -> List[Node]:
        return [node for node in self.nodes if isinstance(node, node_type)]

    def texts(self) -> List[str]:
        return [node.content for node in self.nodes if isinstance(node, Text)]


class Scene:
    def __init__(self, width: int, height: int):
        self.width = width
        self.height = height
        self.gradients: List[LinearGradient] = []
        self.sections: List[Section] = []

    def define(self, gradient: LinearGradient) -> str:
        """Register a gradient and return its ``url(#...)`` reference."""
        self.gradients.append(gradient)
        return f'url(#{gradient.id})'

    def section(self, name: str, top: float = 0) -> Section:
        section = Section(name=name, top=top, bottom=top)
        self.sections.append(section)
        return section

    def section_names(self) -> List[str]:
        return [section.name for section in self.sections]

    def get(self, name: str) -> Optional[Section]:
        for section in self.sections:
            if section.name == name:
                return section
        return None

    def nodes(self) -> Iterator[Node]:
        for section in self.sections:
            yield from section.nodes

    def to_svg(self) -> str:
        try:
            return etree.tostring(self._build_tree(), encoding='unicode')
        except (ValueError, TypeError, etree.LxmlError) as e:
            raise RenderError(f"Could not serialize card: {e}") from e

    def _build_tree(self):
        root = etree.Element(
            _qualified('svg'),
            nsmap={None: SVG_NS},
            width=str(self.width),
            height=str(self.height),
            viewBox=f'0 0 {self.width} {self.height}',
        )

        if self.gradients:
            defs = etree.SubElement(root, _qualified('defs'))
            for gradient in self.gradients:
                element = etree.SubElement(
                    defs,
                    _qualified('linearGradient'),
                    id=gradient.id,
                    x1=gradient.x1,
                    y1=gradient.y1,
                    x2=gradient.x2,
                    y2=gradient.y2,
                )
                for stop in gradient.stops:
                    etree.SubElement(
                        element,
                        _qualified('stop'),
                        offset=stop.offset,
                        style=f'stop-color:{stop.color};stop-opacity:{format_coordinate(stop.opacity)}',
                    )

        for section in self.sections:
            group = etree.SubElement(root, _qualified('g'), {'data-section': section.name})
            for node in section.nodes:
                element = etree.SubElement(group, _qualified(node.tag), node.attributes())
                if isinstance(node, Text):
                    element.text = _XML_INVALID_CHARS.sub('', node.content)
        return root


def _qualified(tag: str) -> str:
    return f'{{{SVG_NS}}}{tag}'
