"""
Resolvent help and version rendering (rich).

Overview
- render(app, command=None): build a rich renderable describing `command` (the
  application itself by default): usage line, description, subcommands table,
  flags (own, then global ones inherited from ancestors) and arguments.
- show(app, command=None, *, scopes=None, stderr=False): print it.
- render_version(app) / show_version(app): "<name> — <version>".

Styling
- Palette keys: usage-label, program-name, usage-section, description-section,
  group-label, flag-name, argument-name, metavar, choice, argument-description,
  default, envar, required, children-title, children-table, children,
  children-description, panel-title, program-version.
- Define a mapping named __styles__ in __main__ to override any palette entry.
- When the application is not colorful, styling is suppressed.
- When the application is fancy, the output is wrapped in a panel.
"""
from collections import defaultdict

from rich.box import ROUNDED
from rich.console import Console, Group
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .values import Enum, List


def _palette(app):
    styles = defaultdict(str, {
        # === Head sections ===
        "usage-label": "bold #00E6FF",  # CYAN → signature info color
        "program-name": "bold #FF4D94",  # MAGENTA-PINK → brand pop
        "usage-section": "bold #36C5F0",  # SKY-BLUE → softer than cyan
        "description-section": "italic #A3A3A3",  # Neutral gray

        # === Groups / nodes ===
        "group-label": "bold #FFFFFF",  # Pure white headers
        "flag-name": "bold #22C55E",  # GREEN for flags
        "argument-name": "bold #00E6FF",  # CYAN for positionals
        "metavar": "bold #FFD600",  # AMBER for values
        "choice": "bold #FF4D94",  # MAGENTA → choices stand out
        "argument-description": "#9CA3AF",  # Muted gray
        "default": "italic #737373",
        "envar": "#36C5F0 dim",
        "required": "bold #EF4444",

        # === Children table ===
        "children-title": "bold #FFFFFF",
        "children-table": "#4B5563",  # Slate border
        "children": "bold #36C5F0",  # Sky-blue subcommands
        "children-description": "#9CA3AF",

        # === Panel / version ===
        "panel-title": "bold #FF4D94",
        "program-version": "bold #00E6FF",
    } | getattr(__import__("__main__"), "__styles__", {}))

    def styler(style):
        return styles[style] if app.colorful else ""

    def text(fragment, style=""):
        if not fragment:
            return Text("")
        if not app.colorful:
            return Text(str(fragment))
        if isinstance(fragment, Text):
            return fragment
        return Text(str(fragment), style)

    return styler, text


def _metavar(node):
    slot = node.slot
    item = slot.item if isinstance(slot, List) else slot
    if isinstance(item, Enum):
        return "{" + ",".join(item.choices) + "}"
    return node.name.upper().replace("-", "_")


def _scopes(app, command, scopes=None):
    """
    Return the commands from the application down to `command`.

    When the matched path is already known (Resolution.scopes), it is checked
    link by link and used as-is instead of searching the tree.
    """
    if scopes is not None:
        scopes = list(scopes)
        if not scopes or scopes[0] is not app:
            raise ValueError(f"scopes must start at {app.name!r}")
        for parent, child in zip(scopes, scopes[1:]):
            if parent.getcommand(child.name) is not child:
                raise ValueError(f"command {child.name!r} is not a child of {parent.name!r}")
        if command is not None and command is not scopes[-1]:
            raise ValueError("command does not match the last scope")
        return scopes

    if command is None or command is app:
        return [app]

    def search(scope, path):
        for child in scope.commands.values():
            if child is command:
                return path + [child]
            if found := search(child, path + [child]):
                return found
        return None

    if (path := search(app, [app])) is None:
        raise ValueError(f"command {command.name!r} is not part of {app.name!r}")
    return path


def render(app, command=None, /, *, scopes=None):
    """
    Build the help renderable of `command` within `app`.

    `scopes` (the commands from `app` down to `command`) may be given instead of
    `command`, typically Resolution.scopes.
    """
    styler, text = _palette(app)
    scopes = _scopes(app, command, scopes)
    command = scopes[-1]

    def flagspec(flag):
        spec = Text()
        if flag.short:
            spec.append(text("-" + flag.short, styler("flag-name"))).append(", ")
        else:
            spec.append("    ")
        if flag.slot.isbool():
            spec.append(text(("--" if flag.terminator else "--[no-]") + flag.name, styler("flag-name")))
        else:
            spec.append(text("--" + flag.name, styler("flag-name")))
            metavar = _metavar(flag)
            spec.append("=").append(text(metavar, styler("choice" if metavar.startswith("{") else "metavar")))
            if flag.repeatable:
                spec.append(" ...")
        return spec

    def details(node):
        line = text(node.help, styler("argument-description")).copy()
        if node.default is not None:
            line.append(" ").append(text(f"(default: {','.join(node.defaults)})", styler("default")))
        if node.envar is not None:
            line.append(" ").append(text(f"(${node.envar})", styler("envar")))
        if node.required:
            line.append(" ").append(text("[required]", styler("required")))
        return line

    def section(label, rows):
        grid = Table.grid(padding=(0, 3))
        grid.add_column(no_wrap=True)
        grid.add_column()
        for row in rows:
            grid.add_row(*row)
        return Group(Text.assemble(text(label, styler("group-label")), ":"), grid, Text(""))

    renders = []

    # Usage line: program route + [flags] + positionals + <command>
    usage = Text()
    usage.append(text("usage", styler("usage-label"))).append(": ")
    usage.append(text(" ".join(scope.name for scope in scopes), styler("program-name")))
    usage.append(text(" [<flags>]", styler("usage-section")))
    for argument in filter(lambda x: not x.hidden, command.arguments):
        label = f"<{argument.name}>" + ("..." if argument.repeatable else "")
        usage.append(" ").append(text(label if argument.required else f"[{label}]", styler("usage-section")))
    if command.commands:
        usage.append(" ").append(text("<command> [<args> ...]", styler("usage-section")))
    renders.append(usage.append("\n"))

    if command.help:
        renders.append(text(command.help, styler("description-section")).copy().append("\n"))

    if children := [child for child in command.commands.values() if not child.hidden]:
        table = Table(
            "name", "help",
            title=text("commands" if command is app else "subcommands", styler("children-title")),
            box=ROUNDED,
            style=styler("children-table"),
            header_style=styler("children-title"),
        )
        route = " ".join(scope.name for scope in scopes)
        for child in children:
            name = text(", ".join((child.name, *child.aliases)), styler("children"))
            if child.help:
                help = text(child.help, styler("children-description"))
            else:
                help = text(f"run '{route} {child.name} --help' for details", styler("children-description"))
            table.add_row(name, help)
        renders.append(table)

    if flags := [flag for flag in command.flags.values() if not flag.hidden]:
        renders.append(section("flags", ((flagspec(flag), details(flag)) for flag in flags)))

    inherited = []
    for scope in reversed(scopes[:-1]):
        for flag in scope.flags.values():
            if not flag.hidden and flag not in inherited and command.getflag(flag.name) is None:
                inherited.append(flag)
    if inherited:
        renders.append(section("global flags", ((flagspec(flag), details(flag)) for flag in inherited)))

    if arguments := [argument for argument in command.arguments if not argument.hidden]:
        renders.append(section("arguments", (
            (text(f"<{argument.name}>", styler("argument-name")), details(argument)) for argument in arguments
        )))

    renderable = Group(*renders)

    if app.fancy:
        renderable = Panel(
            renderable,
            title=Text.assemble("[", " ", f"{app.name} HELP".upper(), " ", "]", style=styler("panel-title")),
            title_align="left",
        )
    return renderable


def show(app, command=None, /, *, scopes=None, stderr=False):
    """
    Print the help of `command` within `app` (stdout unless stderr=True).
    """
    Console(stderr=stderr).print(render(app, command, scopes=scopes))


def render_version(app, /):
    """
    Build the version renderable: "<name> — <version>".
    """
    styler, text = _palette(app)
    renderable = Text(" — ").join((
        text(app.name, styler("program-name")),
        text(app.version or "unknown", styler("program-version")),
    ))
    if app.fancy:
        renderable = Panel(
            renderable,
            title=Text.assemble("[", " ", f"{app.name} VERSION".upper(), " ", "]", style=styler("panel-title")),
            title_align="left",
        )
    return renderable


def show_version(app, /):
    Console().print(render_version(app))


__all__ = (
    "render",
    "show",
    "render_version",
    "show_version",
)
