"""YAML document layer.

Save documents are YAML with game-specific tags (``!tags`` and friends, or
global ``tag:`` URIs) that PyYAML has no constructors for. Those nodes are
loaded as :class:`UnknownTag` and dumped back under the same tag so a document
survives load/dump without losing them.
"""

import typing

import yaml

from .models import UnknownTag


class DocumentLoader(yaml.SafeLoader):
    pass


class DocumentDumper(yaml.SafeDumper):
    pass


def _construct_unknown(loader: DocumentLoader, _tag_suffix: str, node: yaml.Node) -> UnknownTag:
    if isinstance(node, yaml.MappingNode):
        value = loader.construct_mapping(node, deep=True)
    elif isinstance(node, yaml.SequenceNode):
        value = loader.construct_sequence(node, deep=True)
    else:
        value = loader.construct_scalar(node)
    return UnknownTag(node.tag, value)


def _represent_unknown(dumper: DocumentDumper, data: UnknownTag) -> yaml.Node:
    if isinstance(data.value, dict):
        return dumper.represent_mapping(data.tag, data.value)
    if isinstance(data.value, list):
        return dumper.represent_sequence(data.tag, data.value)
    value = "" if data.value is None else str(data.value)
    return dumper.represent_scalar(data.tag, value)


DocumentLoader.add_multi_constructor("!", _construct_unknown)
# Exact constructors for the standard yaml.org tags take precedence over this prefix.
DocumentLoader.add_multi_constructor("tag:", _construct_unknown)
DocumentDumper.add_representer(UnknownTag, _represent_unknown)


def load_document(data: typing.Union[bytes, str]) -> typing.Any:
    if isinstance(data, (bytes, bytearray, memoryview)):
        data = bytes(data).decode("utf-8")
    return yaml.load(data, Loader=DocumentLoader)


def dump_document(document: typing.Any, width: int = 1 << 30) -> bytes:
    text = yaml.dump(
        document,
        Dumper=DocumentDumper,
        default_flow_style=False,
        sort_keys=False,
        allow_unicode=True,
        width=width,
    )
    return text.encode("utf-8")


__all__ = ["DocumentDumper", "DocumentLoader", "dump_document", "load_document"]
