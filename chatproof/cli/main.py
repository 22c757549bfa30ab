# chatproof/cli/main.py
"""
CLI for verifying, inspecting and exporting confidential AI chat conversations.
"""

import json
import logging
import uuid
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from chatproof.client import ConfidentialChatClient
from chatproof.config import Settings
from chatproof.conversation import format_as_json, format_as_text, load_conversation, save_conversation
from chatproof.core.canon import canonicalize_text
from chatproof.core.types import Message, VerificationProof, VerificationState
from chatproof.crypto.hashing import sha256_hex
from chatproof.errors import ChatProofError
from chatproof.verify.verifier import missing_fields, verify_message

app = typer.Typer(
    name="chatproof",
    help="Verify that confidential AI chat responses were produced and signed inside a TEE",
    add_completion=False,
    no_args_is_help=True,
)

console = Console()

BADGES = {
    VerificationState.VERIFIED: "[green]✓ Verified[/]",
    VerificationState.FAILED: "[red]✗ Failed[/]",
    VerificationState.PENDING: "[yellow]⏳ Pending[/]",
    VerificationState.UNAVAILABLE: "[yellow]? Unavailable[/]",
}

STEP_MARKS = {"success": "[green]✓[/]", "failed": "[red]✗[/]", "pending": "[yellow]⏳[/]"}


def _open_conversation(path: Path) -> List[Message]:
    if not path.exists():
        console.print(f"[red]Conversation file not found: {path}[/]")
        raise typer.Exit(1)
    try:
        return load_conversation(path)
    except (ValueError, KeyError, TypeError, AttributeError) as e:
        console.print(f"[red]Failed to read conversation: {str(e)}[/]")
        console.print("[yellow]Expected a JSON list of messages or {\"messages\": [...]}.[/]")
        raise typer.Exit(1)


def _print_proof(msg: Message, show_attestation: bool = False) -> None:
    proof: Optional[VerificationProof] = msg.verification
    console.print(f"[bold cyan]{msg.id}[/]  {BADGES[proof.state] if proof else '[dim]no proof[/]'}")
    if proof is None:
        return
    if proof.state is VerificationState.UNAVAILABLE:
        console.print(f"  Signature could not be fetched: {proof.fetch_error}")
    elif proof.state is VerificationState.PENDING:
        missing = missing_fields(proof, msg.raw_request, msg.raw_response)
        if missing:
            console.print(f"  Not yet verifiable, missing: {', '.join(missing)}")

    if proof.verification_steps:
        table = Table(show_header=True, header_style="bold")
        table.add_column("")
        table.add_column("Step")
        table.add_column("Details")
        table.add_column("Error")
        for step in proof.verification_steps:
            table.add_row(STEP_MARKS.get(step.status, step.status), step.name, step.details or "", step.error or "")
        console.print(table)

    if show_attestation:
        if proof.attestation:
            console.print("[bold]Attestation report:[/]")
            console.print_json(json.dumps(proof.attestation))
        else:
            console.print("[yellow]No attestation data available[/]")


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log hashing and recovery details"),
):
    """Verify confidential AI chat conversations."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


@app.command()
def messages(
    path: Path = typer.Argument(..., help="Conversation JSON file"),
    limit: int = typer.Option(20, "--limit", "-n", help="Number of recent messages to show"),
):
    """Show the most recent messages with their verification state."""
    msgs = _open_conversation(path)
    if not msgs:
        console.print("[yellow]No messages found in conversation.[/]")
        return

    for index, msg in enumerate(msgs[-limit:]):
        badge = BADGES[msg.verification.state] if msg.verification else ""
        console.print(f"[bold cyan]{index:4d} | {msg.role.upper():10} | {msg.id}[/] {badge}")
        console.print(f"  {msg.content[:160]}{'...' if len(msg.content) > 160 else ''}")
        console.print("  " + "─" * 90)


@app.command()
def verify(
    path: Path = typer.Argument(..., help="Conversation JSON file"),
    message_id: Optional[str] = typer.Option(None, "--message", "-m", help="Only verify this message id"),
    write: bool = typer.Option(False, "--write", "-w", help="Store the results back into the file"),
    show_attestation: bool = typer.Option(False, "--attestation", help="Print the stored attestation report"),
):
    """Re-run hash and signature verification for assistant messages."""
    msgs = _open_conversation(path)

    targets = [m for m in msgs if m.role == "assistant" and (message_id is None or m.id == message_id)]
    if not targets:
        console.print("[yellow]No assistant messages to verify.[/]")
        raise typer.Exit(2)

    verified = {m.id: verify_message(m) for m in targets}
    for msg in verified.values():
        _print_proof(msg, show_attestation)

    if write:
        save_conversation(path, [verified.get(m.id, m) for m in msgs])
        console.print(f"[green]Results written to {path}[/]")

    states = [m.verification.state if m.verification else VerificationState.PENDING for m in verified.values()]
    if any(s is VerificationState.FAILED for s in states):
        console.print("[red]✗ Verification failed[/]")
        raise typer.Exit(1)
    if not any(s is VerificationState.VERIFIED for s in states):
        console.print("[yellow]Nothing could be verified yet[/]")
        raise typer.Exit(2)
    if all(s is VerificationState.VERIFIED for s in states):
        console.print(f"[green]✓ {len(states)} response(s) verified[/]")
    else:
        console.print("[yellow]Some responses verified, others still pending[/]")


@app.command()
def export(
    path: Path = typer.Argument(..., help="Conversation JSON file"),
    fmt: str = typer.Option("json", "--format", "-f", help="json or txt"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Output file (default: chat-export.<format>)"),
):
    """Export a conversation as pretty JSON or plain text."""
    if fmt not in ("json", "txt"):
        console.print(f"[red]Unsupported format: {fmt} (use json or txt)[/]")
        raise typer.Exit(1)

    msgs = _open_conversation(path)
    content = format_as_json(msgs) if fmt == "json" else format_as_text(msgs)

    out_path = output or Path(f"chat-export.{fmt}")
    with open(out_path, "w", encoding="utf-8") as f:
        f.write(content)

    console.print(f"[green]Exported {len(msgs)} messages to {out_path}[/]")


@app.command()
def canon(
    path: Path = typer.Argument(..., help="JSON document to canonicalize"),
):
    """Print the canonical form of a JSON document and its SHA-256."""
    try:
        text = canonicalize_text(path.read_text(encoding="utf-8"))
    except OSError as e:
        console.print(f"[red]Cannot read {path}: {str(e)}[/]")
        raise typer.Exit(1)
    except ChatProofError as e:
        console.print(f"[red]Cannot canonicalize: {str(e)}[/]")
        raise typer.Exit(1)

    console.print(text, markup=False, highlight=False, soft_wrap=True)
    console.print(f"sha256: {sha256_hex(text)}")


@app.command()
def ask(
    prompt: str = typer.Argument(..., help="Message to send"),
    conversation: Optional[Path] = typer.Option(None, "--conversation", "-c", help="Continue and save this conversation file"),
    api_key: Optional[str] = typer.Option(None, "--api-key", help="Overrides CHATPROOF_API_KEY"),
    model: Optional[str] = typer.Option(None, "--model", help="Overrides CHATPROOF_MODEL"),
    show_attestation: bool = typer.Option(False, "--attestation", help="Print the attestation report"),
):
    """Send a prompt to the confidential endpoint and verify the answer."""
    history: List[Message] = []
    if conversation is not None and conversation.exists():
        history = _open_conversation(conversation)

    user_message = Message(id=str(uuid.uuid4()), role="user", content=prompt.strip())
    history.append(user_message)

    try:
        with ConfidentialChatClient(Settings.from_env(api_key=api_key, model=model)) as client:
            answer = client.send_message(history)
    except ChatProofError as e:
        console.print(f"[red]{str(e)}[/]")
        raise typer.Exit(1)

    answer = verify_message(answer)
    history.append(answer)

    console.print(answer.content, markup=False)
    console.print("  " + "─" * 90)
    _print_proof(answer, show_attestation)

    if conversation is not None:
        save_conversation(conversation, history)
        console.print(f"[green]Conversation saved to {conversation}[/]")


if __name__ == "__main__":
    app()
