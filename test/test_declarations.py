"""
Declaration model behavioral tests (Flag, Argument, Command, Application).

Scope
- Validate metadata sanitization (names, help, short aliases, defaults, envars).
- Validate sibling invariants enforced while the tree is built.
- Validate the built-in help/version flags and read-only introspection.

Conventions
- Test method names follow CamelCase per project convention.
- Never pass explicit None for any parameter; omit instead.
"""
import unittest
from unittest import TestCase

from resolvent import *


class TestFlag(TestCase):
    """Behavioral tests for Flag metadata."""

    def testDefaults(self):
        flag = Flag("name")
        self.assertEqual(flag.name, "name")
        self.assertIsNone(flag.help)
        self.assertIsNone(flag.short)
        self.assertIsNone(flag.default)
        self.assertEqual(flag.defaults, ())
        self.assertFalse(flag.required)
        self.assertIsInstance(flag.slot, String)
        self.assertEqual(flag.label, "--name")

    def testNameValidation(self):
        for name in ("", "  ", "-x", "--x", "with space", "9lives", "snake_case"):
            with self.assertRaises(ValueError, msg=name):
                Flag(name)
        with self.assertRaises(TypeError):
            Flag(1)

    def testNameIsTrimmed(self):
        self.assertEqual(Flag("  dry-run ").name, "dry-run")

    def testHelpValidation(self):
        with self.assertRaises(ValueError):
            Flag("name", "   ")
        with self.assertRaises(TypeError):
            Flag("name", None)
        self.assertEqual(Flag("name", " the name ").help, "the name")

    def testShortValidation(self):
        self.assertEqual(Flag("verbose", short="v").short, "v")
        for short in ("ab", "-", "", "_"):
            with self.assertRaises(ValueError, msg=short):
                Flag("verbose", short=short)
        with self.assertRaises(TypeError):
            Flag("verbose", short=1)

    def testRequiredAndDefaultAreExclusive(self):
        with self.assertRaises(RequiredDefaultError):
            Flag("token", required=True, default="x")
        with self.assertRaises(ValueError):
            Flag("token", required=True, default="")

    def testSeveralDefaultsNeedCumulativeSlot(self):
        with self.assertRaises(ValueError):
            Flag("tag", default=("a", "b"))
        flag = Flag("tag", default=("a", "b"), type=Strings)
        self.assertEqual(flag.default, ("a", "b"))
        self.assertEqual(flag.defaults, ("a", "b"))

    def testDefaultTypes(self):
        with self.assertRaises(TypeError):
            Flag("port", default=8080)
        with self.assertRaises(TypeError):
            Flag("tag", default=["a", 1], type=Strings)
        self.assertEqual(Flag("port", default="8080", type=int).defaults, ("8080",))

    def testEnvarValidation(self):
        self.assertEqual(Flag("server", envar="CHAT_SERVER").envar, "CHAT_SERVER")
        with self.assertRaises(ValueError):
            Flag("server", envar="1BAD")
        with self.assertRaises(TypeError):
            Flag("server", envar=1)

    def testSlotIsBoundOnce(self):
        slot = Int()
        Flag("first", type=slot)
        with self.assertRaises(ValueError):
            Flag("second", type=slot)

    def testPropertiesAreReadOnly(self):
        flag = Flag("name")
        with self.assertRaises(AttributeError):
            flag.name = "other"

    def testRepr(self):
        self.assertTrue(repr(Flag("name", short="n")).startswith("flag(name='name', short='n'"))


class TestArgument(TestCase):
    """Behavioral tests for Argument metadata."""

    def testRepeatableFollowsSlot(self):
        self.assertFalse(Argument("file").repeatable)
        self.assertTrue(Argument("files", type=Strings).repeatable)

    def testLabel(self):
        self.assertEqual(Argument("file").label, "<file>")

    def testValueShortcut(self):
        argument = Argument("count", type=int)
        self.assertEqual(argument.value, 0)


class TestCommand(TestCase):
    """Behavioral tests for the declaration tree invariants."""

    def setUp(self):
        self.command = Command("post", "post a message")

    def testDuplicateFlagName(self):
        self.command.flag("image")
        with self.assertRaises(DuplicateNameError):
            self.command.flag("image")

    def testDuplicateShortAlias(self):
        self.command.flag("image", short="i")
        with self.assertRaises(DuplicateNameError):
            self.command.flag("input", short="i")

    def testDuplicateArgumentName(self):
        self.command.argument("channel")
        with self.assertRaises(DuplicateNameError):
            self.command.argument("channel")

    def testOnlyLastArgumentIsRepeatable(self):
        self.command.argument("words", type=Strings)
        with self.assertRaises(RepeatableArgumentError):
            self.command.argument("tail")

    def testRequiredAfterOptional(self):
        self.command.argument("channel")
        with self.assertRaises(ArgumentOrderError):
            self.command.argument("text", required=True)

    def testDuplicateCommandAndAlias(self):
        self.command.command("now", aliases=("n",))
        with self.assertRaises(DuplicateCommandError):
            self.command.command("now")
        with self.assertRaises(DuplicateCommandError):
            self.command.command("next", aliases=("n",))
        with self.assertRaises(DuplicateCommandError):
            self.command.command("n")

    def testDeclarationErrorsAreValueErrors(self):
        self.command.flag("image")
        with self.assertRaises(ValueError):
            self.command.flag("image")

    def testAliasesValidation(self):
        with self.assertRaises(TypeError):
            Command("post", aliases="p")
        with self.assertRaises(ValueError):
            Command("post", aliases=("p", "p"))
        with self.assertRaises(ValueError):
            Command("post", aliases=("post",))
        self.assertEqual(Command("post", aliases=[" p "]).aliases, ("p",))

    def testAddPrebuiltNodes(self):
        flag = self.command.add(Flag("image"))
        argument = self.command.add(Argument("channel"))
        child = self.command.add(Command("now"))
        self.assertIs(self.command.flags["image"], flag)
        self.assertEqual(self.command.arguments, (argument,))
        self.assertIs(self.command.commands["now"], child)
        self.assertIs(self.command.getcommand("now"), child)

    def testAddRejectsOthers(self):
        with self.assertRaises(TypeError):
            self.command.add("flag")
        with self.assertRaises(TypeError):
            self.command.add(Application("nested"))
        with self.assertRaises(ValueError):
            self.command.add(self.command)

    def testRegistriesAreCopies(self):
        self.command.flag("image")
        self.command.flags.clear()
        self.assertIn("image", self.command.flags)

    def testRoutesIncludeAliases(self):
        self.command.command("now", aliases=("n",))
        self.assertEqual(self.command.routes, ("now", "n"))

    def testWalkIsDepthFirst(self):
        first = self.command.command("first")
        first.command("nested")
        self.command.command("second")
        self.assertEqual([command.name for command in self.command.walk()], ["post", "first", "nested", "second"])

    def testNodeHasOneParent(self):
        other = Command("other")
        for node in (Flag("image"), Argument("channel"), Command("now")):
            self.command.add(node)
            with self.assertRaises(AttachedNodeError, msg=repr(node)):
                other.add(node)
        self.assertEqual(other.flags, {})
        self.assertEqual(other.arguments, ())
        self.assertEqual(other.commands, {})

    def testRejectedNodeStaysFree(self):
        self.command.flag("image")
        image = Flag("image")
        with self.assertRaises(DuplicateNameError):
            self.command.add(image)
        self.assertIs(Command("other").add(image), image)

    def testCycles(self):
        child = self.command.command("child")
        grandchild = child.command("grandchild")
        with self.assertRaises(CyclicCommandError):
            grandchild.add(self.command)
        with self.assertRaises(CyclicCommandError):
            self.command.add(self.command)
        self.assertEqual(grandchild.commands, {})


class TestApplication(TestCase):
    """Behavioral tests for the application root."""

    def testHelpFlagIsDeclared(self):
        app = Application("chat")
        self.assertIs(app.flags["help"], app.helper)
        self.assertEqual(app.helper.short, "h")
        self.assertTrue(app.helper.terminator)
        self.assertIsNone(app.versioner)

    def testVersionFlagNeedsVersion(self):
        app = Application("chat", version="1.0.0")
        self.assertEqual(app.version, "1.0.0")
        self.assertIs(app.flags["version"], app.versioner)
        self.assertTrue(app.versioner.terminator)

    def testBuiltinNamesAreTaken(self):
        app = Application("chat")
        with self.assertRaises(DuplicateNameError):
            app.flag("help")

    def testSettings(self):
        app = Application("chat", shell=True, fancy=True, colorful=True)
        self.assertEqual((app.shell, app.fancy, app.colorful), (True, True, True))
        self.assertEqual(Application("main.py").name, "main.py")

    def testProgramNameValidation(self):
        with self.assertRaises(ValueError):
            Application("two words")
        with self.assertRaises(TypeError):
            Application(1)
        with self.assertRaises(ValueError):
            Application("chat", version="  ")


if __name__ == "__main__":
    unittest.main()
