r"""
Resolvent declaration nodes: named flags and positional arguments.

Overview
- Nodes
  • Flag: named option (--name, optionally -s), bound to one value slot. Boolean slots
    make it valueless (--debug / --no-debug); terminator flags (help, version) stop
    resolution as soon as they are seen.
  • Argument: positional input bound purely by order among non-flag tokens. Only the
    last argument of a scope may be repeatable (cumulative slot).

- Introspection & representation
  • NodeType metaclass provides stable __repr__/__rich_repr__ and exposes selected
    fields via read-only properties declared in __introspectable__/__displayable__.
    Command (see resolvent.commands) uses the same metaclass.

Metadata (sanitized on construction)
- Shared (all nodes)
  • name: str matching r"[^\W\d_](-?[^\W_]+)*" (no leading dashes).
  • help: Unset | str | Text (short help), non-empty when provided.
  • hidden: bool (suppresses from help).
- Valued (Flag/Argument)
  • type: Value | Value subclass | str/int/float/bool | Callable (see values.coerce).
  • required: bool; mutually exclusive with default.
  • default: Unset | str | Iterable[str] (several strings only for cumulative slots).
  • envar: Unset | str, a valid environment variable name.
- Flag only
  • short: Unset | single letter or digit.
  • terminator: bool.

Quick example:
    >>> from resolvent.arguments import Flag, Argument
    >>> Flag("port", "listening port", short="p", type=int, default="8080")
    flag(name='port', short='p', help='listening port', default='8080', ...)
    >>> Argument("files", type=Strings)
    argument(name='files', ...)
"""
import functools
import operator
import re
import weakref
from collections.abc import Iterable

from rich.text import Text

from .faults import RequiredDefaultError
from .utils import *
from .values import coerce

# Value slots already bound to a node; a slot belongs to exactly one node.
_bound = weakref.WeakSet()


class NodeType(type):
    """
    Metaclass for declaration nodes (flags, arguments, commands).

    Responsibilities
    - Derive __typename__ from the class name (camel-case split with hyphens) for
      messages and help output.
    - Expose every name listed in __introspectable__ as a read-only property backed
      by the private "_<name>" field (see utils.mirror).
    - Provide stable, readable __repr__/__rich_repr__ implementations.

    Conventions
    - __displayable__ (if set) narrows which properties are shown by __rich_repr__;
      otherwise __introspectable__ is used.
    """
    __introspectable__ = ()
    __displayable__ = Unset

    def __new__(cls, name, bases, namespace, **options):
        self = super().__new__(
            cls,
            name,
            bases,
            namespace | {
                "__typename__": re.sub(r"(?<!^)(?=[A-Z])", r"-", name).lower(),
            } | {
                name: mirror(name) for name in namespace.get("__introspectable__", ())
            },
            **options
        )

        @rename("__repr__")
        def __repr__(self):
            """
            Return a concise, stable representation with key metadata.

            Example
            - flag(name='verbose', short='v', ...)
            """
            return f"{type(self).__typename__}({
                ", ".join(map(functools.partial(operator.mod, "%s=%r"), self.__rich_repr__()))
            })"
        self.__repr__ = __repr__

        @rename("__rich_repr__")
        def __rich_repr__(self):
            """
            Yield a sequence of (name, object) pairs for pretty printers.
            """
            for name in coalesce(type(self).__displayable__, type(self).__introspectable__):
                yield name, getattr(self, name)
        self.__rich_repr__ = __rich_repr__

        return self


def _sanitize_metadata(cls, metadata, /):
    """
    Internal: normalize and validate metadata shared by every node.

    - name: required non-empty string, trimmed, matching the node-name grammar.
    - help: optional short description. Unset becomes None; strings are trimmed
      and must not be empty.

    Raises
    - TypeError: if 'name' or 'help' has the wrong type.
    - ValueError: if 'name' is malformed or 'help' is empty after trimming.

    Notes
    - This function mutates the provided metadata dict in place.
    """
    if not isinstance(name := metadata["name"], str):
        raise TypeError(f"{cls.__typename__} 'name' must be a string")
    elif not (name := name.strip()):
        raise ValueError(f"{cls.__typename__} 'name' cannot be empty")
    elif not re.fullmatch(r"[^\W\d_](-?[^\W_]+)*", name):
        raise ValueError(f"{cls.__typename__} 'name' must be a valid shell-style name (unicodes are allowed)")
    metadata["name"] = name

    if not isinstance(help := metadata["help"], str | Text | Unset):
        raise TypeError(f"{cls.__typename__} 'help' must be a string")
    elif isinstance(help, str) and not (help := help.strip()):
        raise ValueError(f"{cls.__typename__} 'help' cannot be empty")
    metadata["help"] = coalesce(help)


def _sanitize_valued_metadata(cls, metadata, /):
    """
    Internal: validate and normalize metadata for nodes bound to a value slot.

    Responsibilities
    - type: turned into a fresh (or the given) value slot; a slot may be bound
      to only one node.
    - default: Unset | str | Iterable[str]. Several defaults are only accepted on
      cumulative slots. Normalized to None, a str, or a tuple of str.
    - required/default: mutually exclusive (RequiredDefaultError).
    - envar: Unset | str naming a valid environment variable.

    Side effects
    - Mutates the provided metadata dict in place ('type' is replaced by 'slot').
    """
    slot = coerce(metadata.pop("type"))
    if slot in _bound:
        raise ValueError(f"{cls.__typename__} value slot is already bound to another node")
    metadata["slot"] = slot

    match default := metadata["default"]:
        case UnsetType():
            default = None
        case str():
            pass
        case Iterable():
            default = tuple(default)
            for item in default:
                if not isinstance(item, str):
                    raise TypeError(f"{cls.__typename__} 'default' items must be strings")
            if not slot.iscumulative():
                raise ValueError(f"{cls.__typename__} several defaults require a cumulative value")
        case _:
            raise TypeError(f"{cls.__typename__} 'default' must be a string or an iterable of strings")
    metadata["default"] = default

    if metadata["required"] and default is not None:
        raise RequiredDefaultError(f"{cls.__typename__} {metadata['name']!r} cannot be both required and defaulted")

    if not isinstance(envar := metadata["envar"], str | Unset):
        raise TypeError(f"{cls.__typename__} 'envar' must be a string")
    elif isinstance(envar, str) and not re.fullmatch(r"[A-Za-z_][A-Za-z0-9_]*", envar):
        raise ValueError(f"{cls.__typename__} 'envar' must be a valid environment variable name")
    metadata["envar"] = coalesce(envar)


def _sanitize_flag_metadata(cls, metadata, /):
    """
    Internal: validate the single-character 'short' alias of a flag.
    """
    if not isinstance(short := metadata["short"], str | Unset):
        raise TypeError(f"{cls.__typename__} 'short' must be a string")
    elif isinstance(short, str) and not re.fullmatch(r"[^\W_]", short):
        raise ValueError(f"{cls.__typename__} 'short' must be a single letter or digit")
    metadata["short"] = coalesce(short)


class Node(metaclass=NodeType):
    """
    Shared behavior of slot-bearing nodes (Flag, Argument).

    Properties
    - defaults: the default as a tuple of strings (empty when there is none).
    - repeatable: whether the bound slot accumulates (cumulative value).
    - value: shortcut for slot.value, the typed destination.
    """

    def __new__(cls, metadata, /):
        _sanitize_metadata(cls, metadata)
        _sanitize_valued_metadata(cls, metadata)

        self = super().__new__(cls)
        for name, object in metadata.items():
            setattr(self, "_" + name, object)
        _bound.add(self._slot)
        return self

    @property
    def defaults(self):
        if self._default is None:
            return ()
        if isinstance(self._default, str):
            return (self._default,)
        return self._default

    @property
    def repeatable(self):
        return self._slot.iscumulative()

    @property
    def value(self):
        return self._slot.value


class Flag(Node):
    """
    Named option bound to a value slot.

    Highlights
    - Spelled --<name> on the command line, and -<short> when a short alias is set.
    - Boolean slots (Bool, Counter) make the flag valueless; --no-<name> sets false.
    - Cumulative slots may be repeated; other flags may appear at most once.
    - Terminator flags stop resolution and skip the validation pass.
    """

    __introspectable__ = (
        "name",
        "short",
        "help",
        "required",
        "default",
        "envar",
        "hidden",
        "terminator",
        "slot",
    )

    def __new__(
            cls,
            name,
            help=Unset,
            /,
            *,
            short=Unset,
            required=False,
            default=Unset,
            envar=Unset,
            hidden=False,
            terminator=False,
            type=Unset
    ):
        """
        Construct a Flag with the provided metadata.

        Parameters
        - name: str
          Long name without dashes (e.g., "dry-run" for --dry-run).
        - help: Unset | str | Text
          Short description for help. If Unset, becomes None.
        - short: Unset | str
          Single letter or digit alias (e.g., "v" for -v).
        - required: bool
          Resolution fails when the flag is missing and has no environment value.
        - default: Unset | str | Iterable[str]
          Textual default fed through the slot when the flag is missing.
        - envar: Unset | str
          Environment variable consulted before the default.
        - hidden: bool
          Suppress from help output.
        - terminator: bool
          Stop resolution when seen (help/version style).
        - type: see values.coerce; a String slot when Unset.
        """
        metadata = {
            "name": name,
            "help": help,
            "short": short,
            "required": bool(required),
            "default": default,
            "envar": envar,
            "hidden": bool(hidden),
            "terminator": bool(terminator),
            "type": type,
        }
        _sanitize_flag_metadata(cls, metadata)
        return super().__new__(cls, metadata)

    @property
    def label(self):
        """
        Spelling used in messages: "--name".
        """
        return "--" + self._name

    def __flag__(self):
        """
        Introspection hook: identify this node as a Flag.
        """
        return self


class Argument(Node):
    """
    Positional input bound by order.

    Highlights
    - Consumes one positional token, or every remaining positional token when its
      slot is cumulative (repeatable).
    - Optional arguments must follow required ones within a scope.
    """

    __introspectable__ = (
        "name",
        "help",
        "required",
        "default",
        "envar",
        "hidden",
        "slot",
    )

    def __new__(
            cls,
            name,
            help=Unset,
            /,
            *,
            required=False,
            default=Unset,
            envar=Unset,
            hidden=False,
            type=Unset
    ):
        """
        Construct an Argument with the provided metadata (see Flag for parameters).
        """
        return super().__new__(cls, {
            "name": name,
            "help": help,
            "required": bool(required),
            "default": default,
            "envar": envar,
            "hidden": bool(hidden),
            "type": type,
        })

    @property
    def label(self):
        """
        Spelling used in messages and usage: "<name>".
        """
        return f"<{self._name}>"

    def __argument__(self):
        """
        Introspection hook: identify this node as an Argument.
        """
        return self


__all__ = (
    # Metaclass (shared with resolvent.commands)
    "NodeType",

    # Classes (declaration nodes)
    "Node",
    "Flag",
    "Argument",
)
