"""Main CLI application using Typer."""
import asyncio
import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from ..errors import AuthenticationError
from ..storage import Message
from .config import ConsoleLog, LogLevel
from .providers import ChatRuntime, get_llm, get_store, open_runtime

# Load environment variables
load_dotenv()

# Create Typer app
app = typer.Typer(
    name="pyparley",
    help="Minimal authenticated chat backed by an OpenAI-compatible completion endpoint",
    no_args_is_help=True,
    add_completion=True,
)

# Console for rich output
console = Console()

USER_OPTION = typer.Option(
    None,
    "--user",
    "-u",
    envvar="PYPARLEY_USER",
    help="Email to sign in as (omit to act unauthenticated)"
)

EXIT_COMMANDS = ("exit", "quit", "q")

LOG_LEVEL_OPTION = typer.Option(
    "warning",
    "--log-level",
    "-l",
    help="Show logs at this level and above: debug, info, warning, or error"
)


@asynccontextmanager
async def _session(runtime: ChatRuntime, user: str | None) -> AsyncIterator[str | None]:
    """Sign ``user`` in for one command and sign out when it ends.

    No user yields None, which stays unauthenticated.
    """
    if not user:
        yield None
        return

    token = await runtime.identity.sign_in(user)
    try:
        yield token
    finally:
        await runtime.identity.sign_out(token)


async def _reply_for(runtime: ChatRuntime, token: str | None, turn_id: str) -> Message | None:
    """Find the stored assistant reply of a turn, if it has one yet."""
    turn = await runtime.store.get_turn(turn_id)
    if turn is None or turn.reply_message_id is None:
        return None
    for message in await runtime.workflow.list_messages(token):
        if message.id == turn.reply_message_id:
            return message
    return None


async def _send_and_wait(runtime: ChatRuntime, token: str | None, text: str) -> None:
    """Send one message, wait for the reply task, and print the reply."""
    turn = await runtime.workflow.send(token, text)
    console.print(f"[dim]Queued reply {turn.id}[/dim]")

    with console.status("[dim]Thinking...[/dim]"):
        await runtime.scheduler.wait_idle()

    reply = await _reply_for(runtime, token, turn.id)
    if reply is None:
        console.print("[yellow]No reply was stored[/yellow]")
        return
    console.print(f"[bold green]Assistant:[/bold green] {escape(reply.content)}\n")


@app.command()
def send(
    text: str = typer.Argument(..., help="Message text"),
    user: str | None = USER_OPTION,
    log_level: str = LOG_LEVEL_OPTION,
):
    """Send a message and wait for the assistant's reply."""
    async def _send():
        llm = get_llm(console)
        log = ConsoleLog(console, LogLevel.from_string(log_level))

        async with open_runtime(llm, log) as runtime, _session(runtime, user) as token:
            try:
                await _send_and_wait(runtime, token, text)
            except AuthenticationError as e:
                console.print(f"[red]Error: {e}[/red]")
                console.print("[dim]Sign in with --user EMAIL[/dim]")
                raise typer.Exit(code=1)

    asyncio.run(_send())


@app.command()
def history(
    user: str | None = USER_OPTION,
):
    """Show the signed-in user's messages, oldest first."""
    async def _history():
        async with open_runtime(None) as runtime, _session(runtime, user) as token:
            messages = await runtime.workflow.list_messages(token)

            if not messages:
                console.print("[yellow]No messages[/yellow]")
                return

            table = Table(show_header=True, header_style="bold cyan")
            table.add_column("#", style="dim", width=4)
            table.add_column("Author", width=10)
            table.add_column("Content")

            for i, message in enumerate(messages, 1):
                author = "[yellow]You[/yellow]" if message.is_user else "[green]Assistant[/green]"
                table.add_row(str(i), author, escape(message.content))

            console.print(table)

    asyncio.run(_history())


@app.command()
def turns(
    user: str | None = USER_OPTION,
):
    """Show each sent message with the status of its reply."""
    async def _turns():
        async with open_runtime(None) as runtime, _session(runtime, user) as token:
            records = await runtime.workflow.list_turns(token)

            if not records:
                console.print("[yellow]No turns[/yellow]")
                return

            status_styles = {
                "pending": "yellow",
                "answered": "green",
                "fallback": "red",
            }

            table = Table(show_header=True, header_style="bold cyan")
            table.add_column("Turn", style="dim")
            table.add_column("Status", width=10)
            table.add_column("Updated")

            for turn in records:
                style = status_styles.get(turn.status.value, "white")
                table.add_row(
                    turn.id,
                    f"[{style}]{turn.status.value}[/{style}]",
                    turn.updated_at.strftime("%Y-%m-%d %H:%M:%S"),
                )

            console.print(table)

    asyncio.run(_turns())


@app.command()
def whoami(
    user: str | None = USER_OPTION,
):
    """Show who the CLI is signed in as."""
    async def _whoami():
        async with open_runtime(None) as runtime, _session(runtime, user) as token:
            current = await runtime.workflow.logged_in_user(token)
            if current is None:
                console.print("[yellow]Not signed in[/yellow]")
            else:
                console.print(f"Signed in as [bold]{escape(current.display_name)}[/bold]")

    asyncio.run(_whoami())


@app.command()
def chat(
    user: str | None = USER_OPTION,
    log_level: str = LOG_LEVEL_OPTION,
):
    """Interactive chat mode."""
    async def _chat():
        llm = get_llm(console)
        log = ConsoleLog(console, LogLevel.from_string(log_level))

        async with open_runtime(llm, log) as runtime, _session(runtime, user) as token:
            current = await runtime.workflow.logged_in_user(token)
            if current is None:
                console.print("[red]Error: Not authenticated[/red]")
                console.print("[dim]Sign in with --user EMAIL[/dim]")
                raise typer.Exit(code=1)

            console.print("[bold cyan]Pyparley Chat[/bold cyan]")
            console.print(f"[dim]Welcome back, {escape(current.display_name)}! Ask me anything.[/dim]")
            console.print("[dim]Type 'exit', 'quit', or 'q' to leave[/dim]\n")

            while True:
                try:
                    user_input = console.input("[bold yellow]You:[/bold yellow] ")

                    if not user_input.strip():
                        continue

                    if user_input.strip().lower() in EXIT_COMMANDS:
                        console.print("[dim]Goodbye![/dim]")
                        break

                    await _send_and_wait(runtime, token, user_input)

                except (KeyboardInterrupt, EOFError):
                    console.print("\n[dim]Goodbye![/dim]")
                    break

    asyncio.run(_chat())


@app.command()
def health():
    """Check store connection and completion provider settings."""
    async def _health():
        all_healthy = True

        store = get_store()
        try:
            await store.connect()
            console.print(f"[green]+[/green] Message store ({store.backend_type}): OK")
            await store.disconnect()
        except Exception as e:
            console.print(f"[red]x[/red] Message store: FAILED ({e})")
            all_healthy = False

        if os.getenv("OPENAI_API_KEY"):
            console.print("[green]+[/green] OpenAI API key: SET")
        else:
            console.print("[yellow]![/yellow] OpenAI API key: NOT SET")

        base_url = os.getenv("OPENAI_BASE_URL")
        console.print(f"[dim]  Base URL: {base_url or 'default'}[/dim]")

        if not all_healthy:
            raise typer.Exit(code=1)

    asyncio.run(_health())


def main():
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
