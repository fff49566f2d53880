"""
Help and version rendering tests.

Conventions
- Test method names follow CamelCase per project convention.
- Renderables are printed to an in-memory console wide enough to avoid wrapping.
"""
import io
import unittest
from unittest import TestCase

from rich.console import Console

from resolvent import *
from resolvent import usage


def capture(renderable):
    output = io.StringIO()
    Console(file=output, width=160).print(renderable)
    return output.getvalue()


class TestHelp(TestCase):
    """Behavioral tests for usage.render."""

    def setUp(self):
        self.app = Application("chat", "a tiny chat client", version="1.0.0")
        self.app.flag("debug", "enable debug mode", short="d", type=Bool)
        self.app.flag("server", "server address", default="127.0.0.1:8080", envar="CHAT_SERVER", type=TCPAddr)
        self.app.flag("secret", hidden=True)
        self.post = self.app.command("post", "post a message to a channel", aliases=("p",))
        self.post.flag("format", type=Enum("plain", "markdown"))
        self.post.argument("channel", "channel to post to", required=True)
        self.post.argument("text", "text to post", type=Strings)
        self.app.command("admin", hidden=True)

    def testRootHelp(self):
        output = capture(usage.render(self.app))
        self.assertIn("usage: chat [<flags>] <command> [<args> ...]", output)
        self.assertIn("a tiny chat client", output)
        self.assertIn("post, p", output)
        self.assertIn("-d, --[no-]debug", output)
        self.assertIn("-h, --help", output)
        self.assertIn("--server=SERVER", output)
        self.assertIn("(default: 127.0.0.1:8080)", output)
        self.assertIn("($CHAT_SERVER)", output)

    def testHiddenNodesAreOmitted(self):
        output = capture(usage.render(self.app))
        self.assertNotIn("secret", output)
        self.assertNotIn("admin", output)

    def testCommandHelp(self):
        output = capture(usage.render(self.app, self.post))
        self.assertIn("usage: chat post [<flags>] <channel> [<text>...]", output)
        self.assertIn("--format={plain,markdown}", output)
        self.assertIn("global flags", output)
        self.assertIn("--[no-]debug", output)
        self.assertIn("<channel>", output)
        self.assertIn("[required]", output)

    def testFancyHelp(self):
        app = Application("chat", fancy=True)
        self.assertIn("CHAT HELP", capture(usage.render(app)))

    def testForeignCommand(self):
        with self.assertRaises(ValueError):
            usage.render(self.app, Command("elsewhere"))

    def testMatchedScopes(self):
        resolution = self.app.resolve(["p", "--help"])
        output = capture(usage.render(self.app, scopes=resolution.scopes))
        self.assertIn("usage: chat post [<flags>] <channel> [<text>...]", output)
        self.assertIn("global flags", output)

    def testScopesMustFollowTheTree(self):
        for scopes in ((), (self.post,), (self.app, Command("elsewhere"))):
            with self.assertRaises(ValueError, msg=repr(scopes)):
                usage.render(self.app, scopes=scopes)
        with self.assertRaises(ValueError):
            usage.render(self.app, self.app, scopes=(self.app, self.post))


class TestVersion(TestCase):
    """Behavioral tests for usage.render_version."""

    def testVersion(self):
        self.assertIn("chat — 1.0.0", capture(usage.render_version(Application("chat", version="1.0.0"))))

    def testUnknownVersion(self):
        self.assertIn("unknown", capture(usage.render_version(Application("chat"))))


if __name__ == "__main__":
    unittest.main()
