"""
Resolvent resolution engine: consume argv against a declaration tree.

Phases (one call of resolve())
- reset: every value slot of the tree is restored to its zero state, so the same
  tree resolves deterministically any number of times.
- consumption: tokens are read left to right, exactly once each.
  • flags: looked up in the current scope, then in its ancestors (innermost first).
  • commands: an exact name/alias match at a non-literal positional token enters
    the child scope; commands win over open positional arguments.
  • positionals: bound in declaration order; a repeatable argument keeps the rest.
  • a terminator flag (help/version) that ends up true stops everything, validation
    included; "--no-help" or "--help=false" only record the false value.
- environment: untouched nodes with an envar present in `environ` are set from it.
- defaults & validation: untouched nodes along the matched chain receive their
  default; every still-missing required node is reported in one MissingRequiredError.

Failure model
- Fail-fast: the first matching or conversion failure raises a ResolutionError
  subclass; nothing is retried and later tokens are not inspected.

Logging
- Matching decisions are traced at DEBUG level on this module's logger; the
  library never configures handlers.
"""
import logging
import shlex
import sys
from collections import deque
from collections.abc import Iterable

from .faults import *
from .tokens import TokenKind, TokenStream, tokenize
from .utils import Unset, ordinal, suggest

logger = logging.getLogger(__name__)


class Resolution:
    """
    Outcome of one successful resolve() call.

    Properties
    - chain: tuple of matched command names (empty when none was selected).
    - command: the selected Command node (the application itself when none).
    - selected: the chain joined with spaces ("" when none).
    - terminator: the terminator Flag that stopped resolution, or None.
    - touched: frozenset of nodes set from argv or the environment.
    - scopes: tuple of commands from the application down to `command`.
    """

    def __init__(self, resolver, /):
        self._resolver = resolver

    @property
    def chain(self):
        return tuple(self._resolver.chain)

    @property
    def command(self):
        return self._resolver.scopes[-1]

    @property
    def selected(self):
        return " ".join(self._resolver.chain)

    @property
    def terminator(self):
        return self._resolver.terminator

    @property
    def touched(self):
        return frozenset(self._resolver.touched)

    @property
    def scopes(self):
        return tuple(self._resolver.scopes)

    def apply_defaults(self):
        """
        Re-run the defaults & validation pass; a no-op on an already validated result.
        """
        self._resolver.validate()
        return self

    def __repr__(self):
        return f"resolution(selected={self.selected!r}, terminator={self.terminator!r})"


class Resolver:
    """
    Mutable state of one resolution: ancestor scopes, pending positionals,
    matched chain and touched nodes.
    """

    def __init__(self, application, /, *, environ=None):
        self.application = application
        self.environ = environ
        self.scopes = [application]
        self.chain = []
        self.pending = deque(application.arguments)
        self.touched = set()
        self.defaulted = set()
        self.terminator = None

    @property
    def scope(self):
        return self.scopes[-1]

    @property
    def route(self):
        return " ".join((self.application.name, *self.chain))

    def nodes(self):
        """
        Yield every flag and argument along the matched scope chain, once each.
        """
        seen = set()
        for scope in self.scopes:
            for node in (*scope.flags.values(), *scope.arguments):
                if node not in seen:
                    seen.add(node)
                    yield node

    def reset(self):
        for command in self.application.walk():
            for node in (*command.flags.values(), *command.arguments):
                node.slot.reset()

    def lookup(self, name, /):
        for scope in reversed(self.scopes):
            if (flag := scope.getflag(name)) is not None:
                return flag
        return None

    def lookup_short(self, short, /):
        for scope in reversed(self.scopes):
            if (flag := scope.getshort(short)) is not None:
                return flag
        return None

    def run(self, argv, /):
        self.reset()
        stream = TokenStream(tokenize(argv))
        for token in stream:
            match token.kind:
                case TokenKind.LONG:
                    self.consume_long(token, stream)
                case TokenKind.SHORT:
                    self.consume_short(token, stream)
                case TokenKind.POSITIONAL:
                    self.consume_positional(token)
                case TokenKind.TERMINATOR:
                    logger.debug("end of flags at %s position", ordinal(token.index))
            if self.terminator is not None:
                logger.debug("terminator %r stopped resolution", self.terminator.label)
                return Resolution(self)

        self.apply_environment()
        self.validate()
        return Resolution(self)

    def consume_long(self, token, stream, /):
        name, value = token.name, token.value
        negated = False
        if (flag := self.lookup(name)) is None and name.startswith("no-"):
            if (flag := self.lookup(name[3:])) is not None and flag.slot.isbool():
                negated = True
            else:
                flag = None
        if flag is None:
            self.unknown_flag("--" + name, token)

        if negated:
            if value is not None:
                raise FlagAssignmentError(
                    "negated flag %r at %s position cannot have a value" % ("--" + name, ordinal(token.index)),
                    title="negated flag cannot take a value",
                    code=FaultCode.FLAG_ASSIGNMENT,
                    hint="remove everything from '=' (for example: --%s)" % name,
                    token=token.text,
                    index=token.index,
                    node=flag,
                )
            logger.debug("negated flag %r at %s position", flag.label, ordinal(token.index))
            self.assign(flag, "false", token)
        elif flag.slot.isbool():
            self.assign(flag, "true" if value is None else value, token)
        else:
            self.assign(flag, value if value is not None else self.take_value(flag, token, stream), token)

    def consume_short(self, token, stream, /):
        cluster = token.name
        for position, short in enumerate(cluster):
            if (flag := self.lookup_short(short)) is None:
                self.unknown_flag("-" + short, token)

            remainder = cluster[position + 1:]
            if flag.slot.isbool():
                if remainder.startswith("="):
                    return self.assign(flag, remainder[1:], token)
                self.assign(flag, "true", token)
                if self.terminator is not None:
                    return
                continue

            if remainder:
                value = remainder[1:] if remainder.startswith("=") else remainder
            else:
                value = self.take_value(flag, token, stream)
            return self.assign(flag, value, token)

    def consume_positional(self, token, /):
        if not token.literal and (command := self.scope.getcommand(token.text)) is not None:
            logger.debug("entered command %r at %s position", command.name, ordinal(token.index))
            self.scopes.append(command)
            self.chain.append(command.name)
            self.pending = deque(command.arguments)
            return

        if self.pending:
            argument = self.pending[0]
            if not argument.repeatable:
                self.pending.popleft()
            logger.debug("bound %r to argument %r", token.text, argument.name)
            return self.convert(argument, token.text, token)

        if self.scope.routes:
            suggestions = suggest(token.text, self.scope.routes)
            try:
                hint = "did you mean %r? you can also run '%s --help' to see available commands" % (
                    suggestions[0], self.route
                )
            except IndexError:
                hint = "run '%s --help' to see available commands" % self.route
            raise UnknownCommandError(
                "unknown command %r at %s position" % (token.text, ordinal(token.index)),
                title="unknown command",
                code=FaultCode.UNKNOWN_COMMAND,
                hint=hint,
                token=token.text,
                index=token.index,
                suggestions=suggestions,
            )

        raise UnexpectedArgumentError(
            "unexpected argument %r at %s position" % (token.text, ordinal(token.index)),
            title="unexpected argument",
            code=FaultCode.UNEXPECTED_ARGUMENT,
            hint="remove this extra value or run '%s --help' to see the expected usage" % self.route,
            token=token.text,
            index=token.index,
        )

    def take_value(self, flag, token, stream, /):
        """
        Consume the next token as the value of `flag`; it must be a positional.
        """
        following = stream.peek()
        if following is None or following.kind is not TokenKind.POSITIONAL:
            raise ExpectedArgumentError(
                "flag %r at %s position expects a value" % (flag.label, ordinal(token.index)),
                title="missing flag value",
                code=FaultCode.EXPECTED_ARGUMENT,
                hint="pass a value after a space or an '=' (for example: %s=<value>)" % flag.label,
                token=token.text,
                index=token.index,
                node=flag,
                expects=flag.slot.expects,
            )
        return next(stream).text

    def assign(self, flag, value, token, /):
        if flag in self.touched and not flag.slot.iscumulative():
            raise DuplicateFlagError(
                "flag %r at %s position was already provided" % (flag.label, ordinal(token.index)),
                title="duplicated flag",
                code=FaultCode.DUPLICATED_FLAG,
                hint="keep a single %s; only repeatable flags can be given more than once" % flag.label,
                token=token.text,
                index=token.index,
                node=flag,
            )
        logger.debug("set flag %r to %r at %s position", flag.label, value, ordinal(token.index))
        self.convert(flag, value, token)
        if flag.terminator and flag.value:
            self.terminator = flag

    def convert(self, node, value, token, /):
        """
        Feed `value` to the node's slot, wrapping any failure in a ConversionError.

        `token` is None for values coming from the environment or a default.
        """
        try:
            node.slot.set(value)
        except Exception as exception:
            if token is not None:
                message = "invalid value %r for %s at %s position" % (value, node.label, ordinal(token.index))
                options = {"token": token.text, "index": token.index}
            else:
                message = "invalid value %r for %s" % (value, node.label)
                options = {"token": value}
            raise ConversionError(
                message,
                title="invalid value",
                code=FaultCode.CONVERSION,
                hint="expected %s (%s)" % (node.slot.expects, exception),
                node=node,
                expects=node.slot.expects,
                exception=exception,
                **options
            ) from exception
        self.touched.add(node)

    def unknown_flag(self, label, token, /):
        names = set()
        for scope in self.scopes:
            names.update("--" + name for name in scope.flags)
            names.update("-" + flag.short for flag in scope.flags.values() if flag.short)
        suggestions = suggest(label, names)
        try:
            hint = "did you mean %r? you can also run '%s --help' to see all flags" % (suggestions[0], self.route)
        except IndexError:
            hint = "try '%s --help' to see all available flags" % self.route
        raise UnknownFlagError(
            "unknown flag %r at %s position" % (label, ordinal(token.index)),
            title="unknown flag",
            code=FaultCode.UNKNOWN_FLAG,
            hint=hint,
            token=token.text,
            index=token.index,
            suggestions=suggestions,
        )

    def apply_environment(self):
        if not self.environ:
            return
        for node in self.nodes():
            if node in self.touched or node.envar is None:
                continue
            if (text := self.environ.get(node.envar)) is None:
                continue
            logger.debug("set %r from environment variable %r", node.label, node.envar)
            for value in (text.split("\n") if node.repeatable else (text,)):
                self.convert(node, value, None)

    def validate(self):
        """
        Apply defaults to untouched nodes and report every missing required node.

        Idempotent: defaulted nodes are remembered and never set twice.
        """
        missing = []
        for node in self.nodes():
            if node in self.touched or node in self.defaulted:
                continue
            if node.defaults:
                logger.debug("applied default %r to %r", node.default, node.label)
                for value in node.defaults:
                    try:
                        node.slot.set(value)
                    except Exception as exception:
                        raise ConversionError(
                            "invalid default %r for %s" % (value, node.label),
                            title="invalid default",
                            code=FaultCode.CONVERSION,
                            hint="expected %s (%s)" % (node.slot.expects, exception),
                            token=value,
                            node=node,
                            expects=node.slot.expects,
                            exception=exception,
                        ) from exception
                self.defaulted.add(node)
            elif node.required:
                missing.append(node)

        if missing:
            labels = ", ".join(
                "%s %r" % ("flag" if hasattr(node, "__flag__") else "argument", node.label) for node in missing
            )
            raise MissingRequiredError(
                "missing required %s" % labels,
                title="missing required input",
                code=FaultCode.MISSING_REQUIRED,
                hint="run '%s --help' to see the expected usage" % self.route,
                nodes=tuple(missing),
            )


def _normalize(argv, /):
    """
    Turn the accepted argv forms into a list of strings.

    - Unset: sys.argv[1:].
    - str: shell-like string split with shlex.split.
    - Iterable[str]: used as-is (items are not trimmed; "" is a valid value).
    """
    if argv is Unset:
        return sys.argv[1:]
    if isinstance(argv, str):
        return shlex.split(argv)
    if isinstance(argv, Iterable):
        tokens = list(argv)
        for token in tokens:
            if not isinstance(token, str):
                raise TypeError("resolve() argv must be a string or an iterable of strings")
        return tokens
    raise TypeError("resolve() argv must be a string or an iterable of strings")


def resolve(application, argv=Unset, /, *, environ=None):
    """
    Resolve argv against an application's declaration tree.

    Parameters
    - application: the root Application.
    - argv: Unset (sys.argv[1:]) | str (shlex-split) | Iterable[str].
    - environ: optional Mapping[str, str] consulted for declared envars.

    Returns
    - Resolution describing the matched command chain; value slots are populated.

    Raises
    - ResolutionError subclasses on the first failure (see resolvent.faults).
    - TypeError for an invalid application or argv shape.
    """
    if not callable(getattr(application, "__application__", None)):
        raise TypeError("resolve() first argument must be an application")
    tokens = _normalize(argv)
    logger.debug("resolving %d tokens for %r", len(tokens), application.name)
    return Resolver(application, environ=environ).run(tokens)


__all__ = (
    "Resolution",
    "Resolver",
    "resolve",
)
