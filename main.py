from rich.pretty import pprint

from resolvent import *

app = Application("chat", "a tiny chat client", version="1.0.0", shell=True, colorful=True)
debug = app.flag("debug", "enable debug mode", short="d", type=Bool)
server = app.flag("server", "server address", default="127.0.0.1:8080", envar="CHAT_SERVER", type=TCPAddr)

register = app.command("register", "register a new user")
nick = register.argument("nick", "nickname for user", required=True)
name = register.argument("name", "name of user")

post = app.command("post", "post a message to a channel")
image = post.flag("image", "image to post", type=ExistingFile)
channel = post.argument("channel", "channel to post to", required=True)
text = post.argument("text", "text to post", type=Strings)


if __name__ == '__main__':
    resolution = app.run()
    pprint({
        "selected": resolution.selected,
        "debug": debug.value,
        "server": str(server.slot),
        "nick": nick.value,
        "channel": channel.value,
        "text": text.value,
    })
