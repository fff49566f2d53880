"""
Resolvent value slots: the typed-conversion contract every node is bound to.

Overview
- Value (abstract)
  • set(token): parse a raw token and store it (replace, or accumulate for cumulative slots).
  • str(value): canonical rendering of the current value (used for defaults and help).
  • isbool(): capability probe enabling valueless flags and the --no-<name> form.
  • iscumulative(): capability probe for repeatable flags and trailing positionals.
  • reset(): restore the zero state (the resolver resets every slot per call).
  • expects: short description of the accepted format, shown in conversion faults.

- Scalars: String, Bool, Int, Int64, Uint64, Float, Duration, IP, TCPAddr, ExistingFile,
  ExistingDir, File, URL, Enum.
- Cumulative: Strings, StringMap, TCPAddrs, Enums, Counter, and List(item) for any scalar.
- Custom(parse, render=str): wraps a caller-supplied closure pair.

Failure contract
- set() raises ValueError (or OSError for filesystem-backed slots) on bad input.
  The resolver wraps any such failure into a ConversionError carrying the offending
  token and the slot's `expects` description; nothing is retried.

Quick example:
    >>> port = Int()
    >>> port.set("0x1F90")
    >>> port.value, str(port)
    (8080, '8080')
"""
import datetime
import ipaddress
import os
import re
import socket
import stat
from abc import ABC, abstractmethod
from fractions import Fraction
from typing import NamedTuple
from urllib.parse import urlsplit

from .utils import Unset

_TRUTHS = frozenset({"1", "t", "T", "TRUE", "true", "True"})
_FALSES = frozenset({"0", "f", "F", "FALSE", "false", "False"})


def _parse_bool(token):
    # An empty token stands for presence (e.g. "--flag=").
    if token == "" or token in _TRUTHS:
        return True
    if token in _FALSES:
        return False
    raise ValueError(f"invalid boolean {token!r}")


class Value(ABC):
    """
    Abstract typed destination bound to exactly one declaration node.

    Subclasses own their storage in the `value` attribute. The resolver only talks
    to the methods below and never looks at the concrete type.
    """
    expects = "a value"

    def __init_subclass__(cls, **options):
        super().__init_subclass__(**options)
        cls.__typename__ = re.sub(r"(?<!^)(?=[A-Z])", r"-", cls.__name__).lower()

    def __init__(self):
        self.reset()

    @abstractmethod
    def set(self, token, /):
        """
        Parse `token` and store it; raise ValueError when it is not acceptable.
        """

    @abstractmethod
    def reset(self):
        """
        Restore the zero state.
        """

    def isbool(self):
        return False

    def iscumulative(self):
        return False

    def __str__(self):
        return "" if self.value is None else str(self.value)

    def __repr__(self):
        return f"{self.__typename__}({str(self)!r})"


class Scalar(Value):
    """
    A single-valued slot: every set() replaces the previous value.

    Subclasses implement parse(token) -> object and may override render(object).
    """
    zero = None

    def set(self, token, /):
        object = self.parse(token)
        if self.value is not None and self.value is not object:
            self.discard(self.value)
        self.value = object

    def reset(self):
        if getattr(self, "value", None) is not None:
            self.discard(self.value)
        self.value = self.zero

    @abstractmethod
    def parse(self, token, /):
        ...

    def discard(self, object, /):
        """
        Release a parsed object that is about to be dropped by reset().
        """

    def render(self, object, /):
        return str(object)

    def __str__(self):
        return "" if self.value is None else self.render(self.value)


class String(Scalar):
    expects = "a string"
    zero = ""

    def parse(self, token, /):
        return token


class Bool(Scalar):
    expects = "a boolean (true, false, 1 or 0)"
    zero = False

    def parse(self, token, /):
        return _parse_bool(token)

    def render(self, object, /):
        return "true" if object else "false"

    def isbool(self):
        return True


_INTEGER = re.compile(r"[+-]?(0[xX][0-9a-fA-F_]+|0[oO][0-7_]+|0[bB][01_]+|[0-9][0-9_]*)")


class Integer(Scalar):
    """
    Integer slot bounded to [minimum, maximum].

    Accepts Go-style base prefixes: 0x/0X (hex), 0o/0O or a bare leading 0 (octal),
    0b/0B (binary), and '_' digit separators.
    """
    expects = "an integer"
    zero = 0
    minimum = -(1 << 63)
    maximum = (1 << 63) - 1

    def parse(self, token, /):
        if not _INTEGER.fullmatch(token):
            raise ValueError(f"invalid integer {token!r}")
        if re.fullmatch(r"[+-]?0[0-7_]+", token):
            number = int(token, 8)
        else:
            number = int(token, 0)
        if not self.minimum <= number <= self.maximum:
            raise ValueError(f"value {token!r} out of range [{self.minimum}, {self.maximum}]")
        return number


class Int(Integer): ...
class Int64(Integer): ...


class Uint64(Integer):
    expects = "an unsigned integer"
    minimum = 0
    maximum = (1 << 64) - 1


class Float(Scalar):
    expects = "a floating-point number"
    zero = 0.0

    def parse(self, token, /):
        return float(token)

    def render(self, object, /):
        return repr(object)


_UNITS = {
    "ns": 1,
    "us": 10 ** 3,
    "µs": 10 ** 3,  # U+00B5 micro sign
    "μs": 10 ** 3,  # U+03BC greek mu
    "ms": 10 ** 6,
    "s": 10 ** 9,
    "m": 60 * 10 ** 9,
    "h": 3600 * 10 ** 9,
}
_COMPONENT = re.compile(r"(\d+\.?\d*|\.\d+)(ns|us|µs|μs|ms|s|m|h)", re.ASCII)


def _fraction(amount, scale):
    whole, remainder = divmod(amount, scale)
    digits = str(remainder).zfill(len(str(scale)) - 1).rstrip("0")
    return f"{whole}.{digits}" if digits else str(whole)


def format_duration(nanoseconds, /):
    """
    Render a nanosecond count the way Go's time.Duration.String() does ("1h2m3.5s", "250ms", "0s").
    """
    if nanoseconds == 0:
        return "0s"
    sign = "-" if nanoseconds < 0 else ""
    nanoseconds = abs(nanoseconds)

    if nanoseconds < 10 ** 9:
        if nanoseconds < 10 ** 3:
            return f"{sign}{nanoseconds}ns"
        unit, scale = ("µs", 10 ** 3) if nanoseconds < 10 ** 6 else ("ms", 10 ** 6)
        return sign + _fraction(nanoseconds, scale) + unit

    seconds, remainder = divmod(nanoseconds, 10 ** 9)
    text = _fraction(seconds % 60 * 10 ** 9 + remainder, 10 ** 9) + "s"
    if minutes := seconds // 60:
        text = f"{minutes % 60}m" + text
        if hours := minutes // 60:
            text = f"{hours}h" + text
    return sign + text


def parse_duration(token, /):
    """
    Parse a Go-style duration ("300ms", "-1.5h", "2h45m") into a signed count of
    nanoseconds; fractions finer than a nanosecond are truncated.
    """
    text, sign = token, 1
    if text[:1] in ("+", "-"):
        sign = -1 if text[0] == "-" else 1
        text = text[1:]
    if text == "0":
        return 0
    if not text:
        raise ValueError(f"invalid duration {token!r}")

    position, nanoseconds = 0, Fraction(0)
    while position < len(text):
        if not (match := _COMPONENT.match(text, position)):
            raise ValueError(f"invalid duration {token!r}")
        nanoseconds += Fraction(match[1]) * _UNITS[match[2]]
        position = match.end()

    nanoseconds = sign * int(nanoseconds)
    if not -(1 << 63) <= nanoseconds <= (1 << 63) - 1:
        raise ValueError(f"duration {token!r} out of range")
    return nanoseconds


class Duration(Scalar):
    """
    Go-style duration stored as an int count of nanoseconds (time.Duration).
    """
    expects = "a duration (e.g. 300ms, 5s, 1h30m)"
    zero = 0

    def parse(self, token, /):
        return parse_duration(token)

    def render(self, object, /):
        return format_duration(object)

    @property
    def timedelta(self):
        """
        The value as a datetime.timedelta (truncated to microseconds).
        """
        return datetime.timedelta(microseconds=int(Fraction(self.value, 1000)))


class IP(Scalar):
    expects = "an IP address"

    def parse(self, token, /):
        return ipaddress.ip_address(token)


class TCPAddress(NamedTuple):
    """
    A resolved host:port pair; ip is None when the host part was empty (":8080").
    """
    ip: ipaddress.IPv4Address | ipaddress.IPv6Address | None
    port: int

    def __str__(self):
        if self.ip is None:
            return f":{self.port}"
        if self.ip.version == 6:
            return f"[{self.ip}]:{self.port}"
        return f"{self.ip}:{self.port}"


class TCPAddr(Scalar):
    expects = "a TCP address (host:port)"

    def parse(self, token, /):
        host, separator, port = token.rpartition(":")
        if not separator:
            raise ValueError(f"missing port in address {token!r}")
        if host.startswith("[") and host.endswith("]"):
            host = host[1:-1]
        elif ":" in host:
            raise ValueError(f"too many colons in address {token!r}")

        try:
            port = int(port)
        except ValueError:
            try:
                port = socket.getservbyname(port, "tcp")
            except OSError:
                raise ValueError(f"unknown port {port!r}") from None
        if not 0 <= port <= 65535:
            raise ValueError(f"invalid port {port!r}")

        if not host:
            return TCPAddress(None, port)
        try:
            ip = ipaddress.ip_address(host)
        except ValueError:
            try:
                infos = socket.getaddrinfo(host, port, type=socket.SOCK_STREAM)
            except OSError as exception:
                raise ValueError(f"cannot resolve host {host!r}") from exception
            ip = ipaddress.ip_address(infos[0][4][0])
        return TCPAddress(ip, port)


class ExistingFile(Scalar):
    expects = "a path to an existing file"
    zero = ""

    def parse(self, token, /):
        try:
            status = os.stat(token)
        except OSError as exception:
            raise ValueError(f"path {token!r} does not exist") from exception
        if stat.S_ISDIR(status.st_mode):
            raise ValueError(f"{token!r} is a directory")
        return token


class ExistingDir(Scalar):
    expects = "a path to an existing directory"
    zero = ""

    def parse(self, token, /):
        try:
            status = os.stat(token)
        except OSError as exception:
            raise ValueError(f"path {token!r} does not exist") from exception
        if not stat.S_ISDIR(status.st_mode):
            raise ValueError(f"{token!r} is not a directory")
        return token


class File(ExistingFile):
    """
    Existing file, opened at conversion time. The slot closes the handle when the
    value is replaced or reset (every resolution starts with a reset).
    """
    expects = "a path to a readable file"
    zero = None

    def __init__(self, mode="r", encoding=None):
        self.mode = mode
        self.encoding = encoding
        super().__init__()

    def parse(self, token, /):
        return open(super().parse(token), self.mode, encoding=self.encoding)

    def discard(self, object, /):
        object.close()

    def render(self, object, /):
        return object.name


class URL(Scalar):
    expects = "an absolute URL"

    def parse(self, token, /):
        parts = urlsplit(token)
        if not parts.scheme or not (parts.netloc or parts.path):
            raise ValueError(f"{token!r} is not an absolute URL")
        try:
            port = parts.port
        except ValueError as exception:
            raise ValueError(f"{token!r} has an invalid port") from exception
        if port is not None and not parts.hostname:
            raise ValueError(f"{token!r} has a port but no host")
        return parts

    def render(self, object, /):
        return object.geturl()


class Enum(Scalar):
    """
    String constrained to a fixed set of choices.
    """
    zero = ""

    def __init__(self, *choices):
        if not choices:
            raise TypeError("enum must declare at least one choice")
        for choice in choices:
            if not isinstance(choice, str):
                raise TypeError("enum choices must be strings")
        if len(set(choices)) != len(choices):
            raise ValueError("enum choices cannot contain duplicates")
        self.choices = choices
        self.expects = "one of: " + ", ".join(choices)
        super().__init__()

    def parse(self, token, /):
        if token not in self.choices:
            raise ValueError(f"{token!r} is not a valid choice")
        return token


class List(Value):
    """
    Cumulative slot collecting every occurrence parsed by an item scalar.
    """

    def __init__(self, item, /):
        if not isinstance(item, Scalar):
            raise TypeError("list item must be a scalar value")
        self.item = item
        self.expects = item.expects
        super().__init__()

    def set(self, token, /):
        self.value.append(self.item.parse(token))

    def reset(self):
        for object in getattr(self, "value", ()):
            self.item.discard(object)
        self.value = []

    def iscumulative(self):
        return True

    def __str__(self):
        return ",".join(map(self.item.render, self.value))


class Strings(List):
    def __init__(self):
        super().__init__(String())


class TCPAddrs(List):
    def __init__(self):
        super().__init__(TCPAddr())


class Enums(List):
    def __init__(self, *choices):
        super().__init__(Enum(*choices))


class StringMap(Value):
    """
    Cumulative KEY=VALUE slot; only the first '=' separates key from value.
    """
    expects = "a KEY=VALUE pair"

    def set(self, token, /):
        key, separator, value = token.partition("=")
        if not separator:
            raise ValueError(f"expected KEY=VALUE, got {token!r}")
        self.value[key] = value

    def reset(self):
        self.value = {}

    def iscumulative(self):
        return True

    def __str__(self):
        return ",".join(f"{key}={value}" for key, value in self.value.items())


class Counter(Value):
    """
    Boolean-capable counter: every occurrence adds one ("-vvv" → 3), false resets.
    """
    expects = "a boolean (true, false, 1 or 0)"

    def set(self, token, /):
        self.value = self.value + 1 if _parse_bool(token) else 0

    def reset(self):
        self.value = 0

    def isbool(self):
        return True

    def iscumulative(self):
        return True


class Custom(Value):
    """
    Caller-supplied conversion: parse(token) -> object, render(object) -> str.
    """

    def __init__(self, parse, /, render=str, *, boolean=False, cumulative=False):
        if not callable(parse):
            raise TypeError("custom 'parse' must be callable")
        if not callable(render):
            raise TypeError("custom 'render' must be callable")
        self.parse = parse
        self.render = render
        self.boolean = bool(boolean)
        self.cumulative = bool(cumulative)
        self.expects = getattr(parse, "__name__", "a value")
        super().__init__()

    def set(self, token, /):
        if self.cumulative:
            self.value.append(self.parse(token))
        else:
            self.value = self.parse(token)

    def reset(self):
        self.value = [] if self.cumulative else None

    def isbool(self):
        return self.boolean

    def iscumulative(self):
        return self.cumulative

    def __str__(self):
        if self.cumulative:
            return ",".join(map(self.render, self.value))
        return "" if self.value is None else self.render(self.value)


_BUILTINS = {
    str: String,
    bool: Bool,
    int: Int,
    float: Float,
}


def coerce(object=Unset, /):
    """
    Turn a node's `type` parameter into a fresh value slot.

    Accepted forms
    - Unset: a String slot.
    - a Value instance: used as-is.
    - a Value subclass: instantiated without arguments.
    - str, bool, int, float: the matching built-in slot.
    - any other callable: wrapped in Custom(callable).
    """
    if object is Unset:
        return String()
    if isinstance(object, Value):
        return object
    if isinstance(object, type) and issubclass(object, Value):
        return object()
    if object in _BUILTINS:
        return _BUILTINS[object]()
    if callable(object):
        return Custom(object)
    raise TypeError("'type' must be a value, a value type, or a callable")


__all__ = (
    # Contract
    "Value",
    "Scalar",
    "List",

    # Scalars
    "String",
    "Bool",
    "Integer",
    "Int",
    "Int64",
    "Uint64",
    "Float",
    "Duration",
    "IP",
    "TCPAddr",
    "ExistingFile",
    "ExistingDir",
    "File",
    "URL",
    "Enum",

    # Cumulative
    "Strings",
    "StringMap",
    "TCPAddrs",
    "Enums",
    "Counter",
    "Custom",

    # Helpers
    "TCPAddress",
    "coerce",
    "parse_duration",
    "format_duration",
)
