"""
Resolvent faults (declaration errors, resolution errors) and rendering.

Scope
- FaultCode: canonical, stable numeric identifiers for every user-facing resolution
  failure. Codes are grouped by domain to keep copy consistent and make logs and
  searches predictable.
- DeclarationError and its subclasses: programming errors detected while the
  declaration tree is being built (duplicate names, required+default, ...). They
  are plain ValueError subclasses and are never rendered for end users.
- ResolutionError and its subclasses: failures of one resolution call. They carry
  a message plus options (code, title, hint, token, index, ...) and know how to
  render themselves with rich.
- trigger(): surface a resolution fault, either by raising it or, in shell mode,
  by printing it and exiting.

UX goals
- Position-first messages: every token-related message includes the ordinal
  position of the offending token (“at third position”).
- Soft but technical language: short titles, one-sentence bodies, a single clear hint.

Integration
- The resolver raises ResolutionError subclasses directly (fail-fast).
- Application.run() catches them and calls trigger(fault, shell=True, ...).
- Hosts may define __codes__, __styles__ and __prog__ in __main__ to remap codes,
  restyle the output, or rename the program in headers.
"""
import copy
import sys
from collections import defaultdict
from enum import IntEnum
from types import MappingProxyType

from rich.console import Console, Group
from rich.panel import Panel
from rich.text import Text

from .utils import Unset, coalesce

console = Console(stderr=True)


class FaultCode(IntEnum):
    """
    canonical fault codes used across the resolver (stable identifiers).

    grouping (by high-level domain)
    - tokens and routing (111xx)
      • MALFORMED_TOKEN, UNKNOWN_FLAG, FLAG_ASSIGNMENT, UNKNOWN_COMMAND, UNEXPECTED_ARGUMENT
    - values (112xx)
      • EXPECTED_ARGUMENT, DUPLICATED_FLAG, CONVERSION
    - validation (113xx)
      • MISSING_REQUIRED

    spacing leaves room for future additions without reshuffling existing codes.
    """
    # --- token/routing errors (111xx) ---
    MALFORMED_TOKEN             = 11101
    UNKNOWN_FLAG                = 11111
    FLAG_ASSIGNMENT             = 11112
    UNKNOWN_COMMAND             = 11121
    UNEXPECTED_ARGUMENT         = 11122

    # --- value errors (112xx) ---
    EXPECTED_ARGUMENT           = 11211
    DUPLICATED_FLAG             = 11212
    CONVERSION                  = 11213

    # --- validation errors (113xx) ---
    MISSING_REQUIRED            = 11311

    def normalize(self):
        """
        return a host-normalized string for this code.

        the host application can provide a __codes__ mapping in __main__
        to override numeric ids with friendlier labels. when no mapping
        is present, the numeric value is returned as a string.
        """
        return str(getattr(__import__("__main__"), "__codes__", {}).get(self, self.value))


class DeclarationError(ValueError):
    """
    a declaration tree violates one of its construction-time invariants.

    these are programming errors: they surface while flags, arguments and
    commands are being registered, never while argv is being resolved.
    """


class DuplicateNameError(DeclarationError): ...
class DuplicateCommandError(DeclarationError): ...
class RequiredDefaultError(DeclarationError): ...
class RepeatableArgumentError(DeclarationError): ...
class ArgumentOrderError(DeclarationError): ...
class AttachedNodeError(DeclarationError): ...
class CyclicCommandError(DeclarationError): ...


class ResolutionError(Exception):
    """
    base type for every failure of a resolution call.

    options (all optional, passed as keywords)
    - code: FaultCode, title: str, hint: str
    - token: the offending raw token, index: its 1-based position
    - tool: the Application (used for the program name in headers)
    - shell, fancy, colorful: rendering/trigger switches
    - any extra context (node, nodes, suggestions, exception, expects, ...)

    options are also readable as attributes (error.token, error.code, ...).
    """

    def __init__(self, message=Unset, /, **options):
        assert isinstance(message, str | Unset)
        super().__init__(coalesce(message, ""))
        self.message = message
        self.options = MappingProxyType(options)

    def __getattr__(self, name):
        try:
            return self.__dict__["options"][name]
        except KeyError:
            raise AttributeError(name) from None

    def __rich__(self):
        main = __import__("__main__")

        styles = defaultdict(str, {
            # header parts
            "prog-name": "bold #E6E6F0",  # near-white program name
            "code": "bold #00E5FF",  # neon cyan fault code
            "error-title": "bold #FF4DA6",  # friendly pinky title

            # body
            "error-message": "#C8C8D0",  # soft light gray message
            "hint-arrow": "#9CE19C dim",  # gentle green arrow
            "hint": "italic #9CE19C",  # gentle green hint text
        } | getattr(main, "__styles__", {}))

        colorful = self.options.get("colorful", True)

        def styler(style):
            return styles[style] if colorful else ""

        def text(fragment, style=""):
            if not fragment:
                return Text("")
            if not colorful:
                return Text(str(fragment))
            if isinstance(fragment, Text):
                return fragment
            return Text(str(fragment), style)

        tool = self.options.get("tool")
        prog = text(getattr(main, "__prog__", getattr(tool, "name", "resolvent")), styler("prog-name"))

        code = self.options.get("code")
        header = Text.assemble(
            "[ ",
            prog,
            " - ",
            text(code.normalize() if code is not None else "?", styler("code")),
            " | ",
            text(str(self.options.get("title", "error")).title(), styler("error-title")),
            " ]"
        )
        message = text(coalesce(self.message, ""), styler("error-message"))
        hint = Text.assemble(text(" → ", styler("hint-arrow")), text(self.options.get("hint"), styler("hint")))

        if self.options.get("fancy", False):
            return Panel(Group(message, hint), title=header, title_align="left")

        return Group(header, message, hint)

    def __trigger__(self) -> None:
        if not self.options.get("shell", False):
            raise self from None
        console.print(self)
        sys.exit(1)

    def __replace__(self, *unused, **overrides):
        assert not unused, "positional arguments are not allowed"
        return type(self)(self.message, **{**self.options, **overrides})


class MalformedTokenError(ResolutionError): ...
class UnknownFlagError(ResolutionError): ...
class FlagAssignmentError(ResolutionError): ...
class UnknownCommandError(ResolutionError): ...
class UnexpectedArgumentError(ResolutionError): ...
class ExpectedArgumentError(ResolutionError): ...
class DuplicateFlagError(ResolutionError): ...
class ConversionError(ResolutionError): ...
class MissingRequiredError(ResolutionError): ...


def trigger(fault, /, **options):
    """
    surface a fault with the given runtime options.

    contract
    - fault must provide __trigger__ and __replace__ methods (see ResolutionError).
    - options are merged into the fault via copy.replace(fault, **options) before triggering.
    - in shell mode, rendering happens via the rich console and the process exits
      with status 1; otherwise the fault is raised.
    """
    if (
        not hasattr(fault, "__trigger__") or
        not callable(fault.__trigger__) or
        not hasattr(fault, "__replace__") or
        not callable(fault.__replace__)
    ):
        raise TypeError("trigger() argument must have a __trigger__ and __replace__ methods")
    copy.replace(fault, **options).__trigger__()


__all__ = (
    "FaultCode",
    "DeclarationError",
    "DuplicateNameError",
    "DuplicateCommandError",
    "RequiredDefaultError",
    "RepeatableArgumentError",
    "ArgumentOrderError",
    "AttachedNodeError",
    "CyclicCommandError",
    "ResolutionError",
    "MalformedTokenError",
    "UnknownFlagError",
    "FlagAssignmentError",
    "UnknownCommandError",
    "UnexpectedArgumentError",
    "ExpectedArgumentError",
    "DuplicateFlagError",
    "ConversionError",
    "MissingRequiredError",
    "trigger",
)
