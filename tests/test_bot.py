from hypothesis import given, strategies
import pytest

from dataleague import bot


@pytest.mark.parametrize("content, args", [
    ("dl go -m 1vs1", ["go", "-m", "1vs1"]),
    ("DL login", ["login"]),
    ('dl submit 10.5 "http://a.io/x y"',
     ["submit", "10.5", "http://a.io/x y"]),
    ("dl", []),
    ("dlx go", None),
    ("hello dl", None),
])
def test_command_args(content, args):
    assert bot.command_args(content, "dl") == args


def test_unbalanced_quotes():
    with pytest.raises(ValueError):
        bot.command_args('dl submit "10', "dl")


@given(strategies.text(alphabet="ab \n", max_size=300),
       strategies.integers(min_value=5, max_value=50))
def test_chunks_fit_and_keep_the_text(text, size):
    chunks = list(bot.chunks(text, size))
    assert all(0 < len(x) <= size for x in chunks)
    # Only trailing whitespace may be left out.
    joined = "".join(chunks)
    assert text.startswith(joined)
    assert not text[len(joined):].strip()


def test_snapshot(mocker):
    msg = mocker.Mock()
    msg.id = 1
    msg.channel.id = 2
    msg.guild = None
    msg.content = "dl login"
    msg.author.id = 3
    msg.author.name = "bob"
    msg.author.discriminator = "7"
    msg.author.bot = False
    msg.author.display_avatar.url = "http://cdn/a.png"

    message = bot.snapshot(msg)

    assert (message.id, message.channel_id, message.guild_id) == (
        "1", "2", "")
    assert message.author.id == "3"
    assert message.author.username == "bob"
    assert message.author.avatar_url == "http://cdn/a.png"


@pytest.mark.asyncio
async def test_slash_command_error_is_logged_and_answered(mocker, caplog):
    cog = bot.ErrorHandlerCog(mocker.Mock())
    ctx = mocker.AsyncMock()
    ctx.command = "ping"

    await cog.on_application_command_error(ctx, RuntimeError("boom"))

    ctx.respond.assert_awaited_once()
    assert ctx.respond.await_args.kwargs["ephemeral"] is True
    assert "/ping failed" in caplog.text
