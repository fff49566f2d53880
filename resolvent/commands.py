"""
Resolvent command layer: the declaration tree and the process glue around it.

What this module provides
- Command: a named scope holding flags, positional arguments and subcommands.
  • flag(...), argument(...), command(...) build and register nodes in one call.
  • add(node) registers a prebuilt Flag, Argument or Command.
  • Sibling names and aliases are unique; positional ordering rules are enforced
    while the tree is being built (DeclarationError subclasses).

- Application: the root Command plus process-level settings.
  • Adds --help/-h (and --version when a version is set) as terminator flags.
  • resolve(argv, environ=...) runs the resolution engine (resolvent.resolution).
  • run(argv) is the "shell" glue: faults are rendered with rich and the process
    exits with status 1; help and version are rendered when requested.

Design notes
- Nodes carry no parent pointer. The resolver walks the tree downwards and keeps
  the ancestor chain itself. Ownership is still recorded on registration: a node
  belongs to one parent at most and commands never form a cycle.
- The tree is never mutated during resolution; only value slots are.

Quick start
    from resolvent import Application

    app = Application("chat", "a tiny chat client", version="1.0.0")
    app.flag("debug", "enable debug mode", type=bool)
    post = app.command("post", "post a message to a channel")
    post.argument("channel", "channel to post to", required=True)

    resolution = app.run()
    if resolution.selected == "post":
        ...
"""
import os
import re
import sys
import weakref
from collections.abc import Iterable

from rich.text import Text

from . import usage
from .arguments import NodeType, Flag, Argument, _sanitize_metadata
from .faults import *
from .resolution import resolve
from .utils import *
from .values import Bool

# Nodes already registered under a parent (a node has one parent at most).
_attached = weakref.WeakSet()


def _sanitize_aliases(cls, metadata, /):
    """
    Internal: validate command aliases.

    - aliases: iterable of names following the node-name grammar, unique and
      different from the command name. Normalized to a tuple.
    """
    if isinstance(aliases := metadata["aliases"], str) or not isinstance(aliases, Iterable):
        raise TypeError(f"{cls.__typename__} 'aliases' must be an iterable of strings")

    sanitized = []
    for alias in aliases:
        if not isinstance(alias, str):
            raise TypeError(f"{cls.__typename__} aliases must be strings")
        elif not re.fullmatch(r"[^\W\d_](-?[^\W_]+)*", alias := alias.strip()):
            raise ValueError(f"{cls.__typename__} aliases must be valid shell-style names (unicodes are allowed)")
        elif alias in sanitized or alias == metadata["name"]:
            raise ValueError(f"{cls.__typename__} aliases cannot contain duplicates")
        sanitized.append(alias)
    metadata["aliases"] = tuple(sanitized)


def _sanitize_program_metadata(cls, metadata, /):
    """
    Internal: validate the root program name and process-level settings.

    The program name is free-form (e.g. "main.py") but must be a non-empty
    string without whitespace; help follows the usual rules.
    """
    if not isinstance(name := metadata["name"], str):
        raise TypeError(f"{cls.__typename__} 'name' must be a string")
    elif not (name := name.strip()) or re.search(r"\s", name):
        raise ValueError(f"{cls.__typename__} 'name' must be a non-empty word")
    metadata["name"] = name

    if not isinstance(help := metadata["help"], str | Text | Unset):
        raise TypeError(f"{cls.__typename__} 'help' must be a string")
    elif isinstance(help, str) and not (help := help.strip()):
        raise ValueError(f"{cls.__typename__} 'help' cannot be empty")
    metadata["help"] = coalesce(help)

    if not isinstance(version := metadata["version"], str | Unset):
        raise TypeError(f"{cls.__typename__} 'version' must be a string")
    elif isinstance(version, str) and not (version := version.strip()):
        raise ValueError(f"{cls.__typename__} 'version' cannot be empty")
    metadata["version"] = coalesce(version)


def _construct(cls, metadata, /):
    """
    Internal: allocate a command and mirror sanitized metadata into private fields.
    """
    self = object.__new__(cls)
    for name, value in metadata.items():
        setattr(self, "_" + name, value)
    self._flags = {}
    self._shorts = {}
    self._arguments = []
    self._commands = {}
    self._routes = {}
    return self


class Command(metaclass=NodeType):
    """
    Named scope of flags, positional arguments and subcommands.

    Responsibilities
    - Introspection: exposes metadata (name, help, aliases, ...) and read-only copies
      of its registries (flags, arguments, commands) as properties.
    - Composition: builds the declaration tree through flag()/argument()/command()/add().
    - Lookup: constant-time accessors used by the resolver (getflag, getshort,
      getcommand) that do not copy the registries.

    Invariants (checked on registration)
    - Flag names and short aliases are unique within the command (DuplicateNameError).
    - Argument names are unique within the command (DuplicateNameError).
    - Command names and aliases are unique among siblings (DuplicateCommandError).
    - Only the last argument may be repeatable (RepeatableArgumentError).
    - A required argument cannot follow an optional one (ArgumentOrderError).
    """

    __introspectable__ = (
        "name",
        "help",
        "aliases",
        "hidden",
        "flags",
        "arguments",
        "commands",
    )

    __displayable__ = (
        "name",
        "help",
        "aliases",
        "hidden",
    )

    def __new__(cls, name, help=Unset, /, *, aliases=(), hidden=False):
        """
        Construct a Command.

        Parameters
        - name: str
          Word typed on the command line to select this command.
        - help: Unset | str | Text
          Short description for help. If Unset, becomes None.
        - aliases: Iterable[str]
          Alternative names selecting the same command.
        - hidden: bool
          Suppress from help output.
        """
        metadata = {
            "name": name,
            "help": help,
            "aliases": aliases,
            "hidden": bool(hidden),
        }
        _sanitize_metadata(cls, metadata)
        _sanitize_aliases(cls, metadata)
        return _construct(cls, metadata)

    def getflag(self, name, /):
        return self._flags.get(name)

    def getshort(self, short, /):
        return self._shorts.get(short)

    def getcommand(self, name, /):
        return self._routes.get(name)

    @property
    def routes(self):
        """
        Every word selecting a child command (names and aliases).
        """
        return tuple(self._routes)

    def add(self, node, /):
        """
        Register a prebuilt Flag, Argument or Command and return it.

        Raises
        - TypeError: for anything else (an Application cannot be nested).
        - DeclarationError subclasses: when a sibling invariant would be broken, when
          the node already has a parent, or when it would close a command cycle.
        """
        if node in _attached:
            raise AttachedNodeError(f"{type(node).__typename__} {node.name!r} already belongs to another command")
        if isinstance(node, Flag):
            if node.name in self._flags:
                raise DuplicateNameError(f"flag {node.label!r} is already declared in {self._name!r}")
            if node.short is not None and node.short in self._shorts:
                raise DuplicateNameError(f"short flag '-{node.short}' is already declared in {self._name!r}")
            self._flags[node.name] = node
            if node.short is not None:
                self._shorts[node.short] = node
        elif isinstance(node, Argument):
            if any(argument.name == node.name for argument in self._arguments):
                raise DuplicateNameError(f"argument {node.name!r} is already declared in {self._name!r}")
            if self._arguments and self._arguments[-1].repeatable:
                raise RepeatableArgumentError(f"argument {node.name!r} cannot follow repeatable argument {self._arguments[-1].name!r}")
            if node.required and any(not argument.required for argument in self._arguments):
                raise ArgumentOrderError(f"required argument {node.name!r} cannot follow an optional argument")
            self._arguments.append(node)
        elif isinstance(node, Command) and not isinstance(node, Application):
            if any(command is self for command in node.walk()):
                raise CyclicCommandError(f"command {node.name!r} cannot contain {self._name!r}")
            for route in (node.name, *node.aliases):
                if route in self._routes:
                    raise DuplicateCommandError(f"command name {route!r} is already in use in {self._name!r}")
            self._commands[node.name] = node
            for route in (node.name, *node.aliases):
                self._routes[route] = node
        else:
            raise TypeError(f"{type(self).__typename__} can only contain flags, arguments and commands")
        _attached.add(node)
        return node

    def flag(
            self,
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
        Declare a flag in this scope and return it (see arguments.Flag).
        """
        return self.add(Flag(
            name,
            help,
            short=short,
            required=required,
            default=default,
            envar=envar,
            hidden=hidden,
            terminator=terminator,
            type=type
        ))

    def argument(
            self,
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
        Declare a positional argument in this scope and return it (see arguments.Argument).
        """
        return self.add(Argument(
            name,
            help,
            required=required,
            default=default,
            envar=envar,
            hidden=hidden,
            type=type
        ))

    def command(self, name, help=Unset, /, *, aliases=(), hidden=False):
        """
        Declare a subcommand in this scope and return it.
        """
        return self.add(Command(name, help, aliases=aliases, hidden=hidden))

    def walk(self):
        """
        Yield this command and every command below it, depth-first, once each.
        """
        seen = set()
        stack = [self]
        while stack:
            if (command := stack.pop()) in seen:
                continue
            seen.add(command)
            yield command
            stack.extend(reversed(command._commands.values()))

    def __command__(self):
        """
        Introspection hook: identify this node as a Command.
        """
        return self


class Application(Command):
    """
    Root of a declaration tree, plus process-level settings.

    Settings
    - version: Unset | str. When set, a --version terminator flag is declared.
    - shell: bool. run() renders faults and exits instead of raising them.
    - fancy: bool. Render faults and help inside rich panels.
    - colorful: bool. Style the output (otherwise plain text).

    The --help/-h terminator flag is always declared; both built-in flags live in
    the root scope, so they are reachable from every subcommand.
    """

    __introspectable__ = Command.__introspectable__ + (
        "version",
        "shell",
        "fancy",
        "colorful",
    )

    __displayable__ = (
        "name",
        "help",
        "version",
        "shell",
        "fancy",
        "colorful",
    )

    def __new__(
            cls,
            name=Unset,
            help=Unset,
            /,
            *,
            version=Unset,
            shell=False,
            fancy=False,
            colorful=False
    ):
        """
        Construct an Application.

        Parameters
        - name: Unset | str
          Program name shown in usage and fault headers; defaults to the basename
          of sys.argv[0].
        - help: Unset | str | Text
          Program description for help.
        - version, shell, fancy, colorful: see the class docstring.
        """
        metadata = {
            "name": coalesce(name, os.path.basename(sys.argv[0]) or "resolvent"),
            "help": help,
            "aliases": (),
            "hidden": False,
            "version": version,
            "shell": bool(shell),
            "fancy": bool(fancy),
            "colorful": bool(colorful),
        }
        _sanitize_program_metadata(cls, metadata)

        self = _construct(cls, metadata)
        self._helper = self.flag("help", "show this help message and exit", short="h", terminator=True, type=Bool)
        self._versioner = Unset
        if self._version is not None:
            self._versioner = self.flag("version", "show the version and exit", terminator=True, type=Bool)
        return self

    @property
    def helper(self):
        return self._helper

    @property
    def versioner(self):
        return coalesce(self._versioner)

    def resolve(self, argv=Unset, /, *, environ=None):
        """
        Resolve argv against this tree and return a Resolution (see resolution.resolve).
        """
        return resolve(self, argv, environ=environ)

    def run(self, argv=Unset, /, *, environ=Unset):
        """
        Resolve argv the way a program entry point does.

        Behavior
        - environ defaults to os.environ, so declared envars are honored.
        - On a ResolutionError, the fault is surfaced via faults.trigger with this
          application's settings: printed and exit(1) in shell mode, raised otherwise.
        - When --help or --version stopped resolution, the matching text is printed;
          in shell mode the process then exits with status 0.

        Returns
        - Resolution: when resolution succeeded (or stopped on a terminator outside
          shell mode).
        """
        try:
            resolution = self.resolve(argv, environ=coalesce(environ, os.environ))
        except ResolutionError as fault:
            if not self._shell:
                raise
            trigger(fault, tool=self, shell=True, fancy=self._fancy, colorful=self._colorful)
            raise

        if resolution.terminator is self._helper:
            usage.show(self, scopes=resolution.scopes)
        elif resolution.terminator is not None and resolution.terminator is self._versioner:
            usage.show_version(self)
        else:
            return resolution

        if self._shell:
            sys.exit(0)
        return resolution

    def __application__(self):
        """
        Introspection hook: identify this node as an Application.
        """
        return self


__all__ = (
    # Public API surface for consumers of resolvent.commands.
    # These names are re-exported from the package __init__.
    "Command",
    "Application",
)
