"""
Serialization of telemetry results using MessagePack or JSON.

Usage patterns, network statistics and recommendations are plain dataclasses that are
handed to a presentation layer, which may well live in another process (e.g. a metrics
dashboard). This module turns them into MessagePack for compact transfer or JSON for
simple storage and display, and faithfully reconstructs them on the other side.
"""

import builtins
from dataclasses import is_dataclass
from enum import Enum
import json
import typing
from typing import Any, Dict, IO, List

import msgpack


class Encoding:
    """
    Serialization and deserialization of objects using JSON or MessagePack.

    Besides the builtin types, registered dataclasses and enums as well as exceptions
    are supported.
    """

    def __init__(self, *types: type):
        """Initialize a (de)serializer with support for the given dataclass types."""
        self._dataclasses: Dict[str, type] = {}
        self._enums: Dict[str, type] = {}

        for typ in types:
            self.register_types(typ)

    def register_types(self, seed_type: type) -> None:
        """
        Register all dataclass and enum types used within the specified type.

        This includes the class itself, its class members, nested dataclasses, and
        container types like List and Optional.
        """
        for typ in self._discover_types(seed_type):
            if isinstance(typ, type) and issubclass(typ, Enum):
                self._enums[typ.__qualname__] = typ
            else:
                self._dataclasses[typ.__qualname__] = typ

    def pack(self, obj: Any) -> bytes:
        """Serialize an object using MessagePack."""
        return msgpack.packb(obj, default=self.serialize_obj)

    def unpack(self, data: bytes) -> Any:
        """Deserialize an object using MessagePack."""
        return msgpack.unpackb(data, object_hook=self.deserialize_obj)

    def dump_json(self, obj: Any, fp: IO[str]) -> None:
        """Serialize an object to JSON."""
        json.dump(obj, fp, default=self.serialize_obj)

    def load_json(self, fp: IO[str]) -> Any:
        """Deserialize an object from JSON."""
        return json.load(fp, object_hook=self.deserialize_obj)

    def serialize_obj(self, obj: Any) -> Any:
        """Turn a dataclass, enum or exception into a serialization friendly form."""
        if isinstance(obj, BaseException):
            return self._serialize_exception(obj)
        elif isinstance(obj, Enum) and obj.__class__.__qualname__ in self._enums:
            return self._serialize_enum(obj)
        elif obj.__class__.__qualname__ in self._dataclasses:
            return self._serialize_dataclass(obj)
        else:
            raise ValueError(f"unserializable object {obj}")

    def deserialize_obj(self, obj: Any) -> Any:
        """Reconstruct a dataclass, enum or exception from a serialized form."""
        if isinstance(obj, dict) and "__exception__" in obj:
            return self._deserialize_exception(obj)
        elif isinstance(obj, dict) and "__enum__" in obj:
            return self._deserialize_enum(obj)
        elif isinstance(obj, dict) and "__data__" in obj:
            return self._deserialize_dataclass(obj)
        else:
            return obj

    #
    # Exception serialization
    #

    @staticmethod
    def _serialize_exception(exc: BaseException) -> Dict:
        """Turn an exception into a serialization friendly dict."""
        return {"__exception__": {"name": exc.__class__.__qualname__, "args": exc.args}}

    @staticmethod
    def _deserialize_exception(obj: Dict) -> BaseException:
        """
        Reconstruct an exception from its serialized representation.

        If it was a builtin exception (like IOError) then it is reconstructed
        faithfully, otherwise as a generic Exception with the original arguments.
        """
        name = obj["__exception__"]["name"]
        args = obj["__exception__"]["args"]

        builtin_exc = getattr(builtins, name, None.__class__)

        if isinstance(builtin_exc, type) and issubclass(builtin_exc, BaseException):
            return builtin_exc(*args)
        else:
            return Exception(*args)

    #
    # Enum serialization
    #

    @staticmethod
    def _serialize_enum(obj: Enum) -> Dict:
        """Turn an enum member into a serialization friendly dict."""
        return {"__enum__": {"type": obj.__class__.__qualname__, "value": obj.value}}

    def _deserialize_enum(self, obj: Dict) -> Enum:
        """Reconstruct a previously registered enum member."""
        type_name = obj["__enum__"]["type"]
        value = obj["__enum__"]["value"]

        if type_name not in self._enums:
            raise TypeError(f"unknown enum '{type_name}'")

        try:
            return self._enums[type_name](value)
        except ValueError as e:
            raise TypeError(f"failed to deserialize {type_name}: {e}")

    #
    # Data class serialization
    #

    @classmethod
    def _serialize_dataclass(cls, obj: Any) -> Dict:
        """Turn a dataclass into a serialization friendly dict."""
        return {"__data__": {"type": obj.__class__.__qualname__, "data": obj.__dict__}}

    def _deserialize_dataclass(self, obj: Dict) -> Any:
        """
        Reconstruct a dataclass from its serialized representation.

        Only previously registered dataclass types can be deserialized.
        """
        type_name = obj["__data__"]["type"]
        type_data = obj["__data__"]["data"]

        if type_name in self._dataclasses:
            try:
                return self._dataclasses[type_name](**type_data)
            except Exception as e:
                raise TypeError(f"failed to deserialize {type_name}: {e}")
        else:
            raise TypeError(f"unknown dataclass '{type_name}'")

    @staticmethod
    def _discover_types(*seed_types: type) -> List[type]:
        """
        Find all dataclass and enum types used with the specified type.

        This includes the class itself, its class members, nested dataclasses, and
        container types like List and Optional.
        """
        candidates = set(seed_types)
        explored = set()
        discovered = set()

        while len(candidates) > 0:
            candidate = candidates.pop()

            if candidate not in explored:
                explored.add(candidate)
            else:
                continue

            if isinstance(candidate, type) and issubclass(candidate, Enum):
                discovered.add(candidate)
            elif is_dataclass(candidate):
                discovered.add(candidate)

                # Discover member types of dataclass
                for subtype in typing.get_type_hints(candidate).values():
                    candidates.add(subtype)
            elif hasattr(candidate, "__origin__"):
                # Discover types nested in constructs like Union[T] and List[T]
                for subtype in getattr(candidate, "__args__", ()):
                    candidates.add(subtype)

        return list(discovered)
