"""
Check LiveKit configuration for the voice API.

Reports which variables are present, signs a test token, and optionally
asks a running server for its own view (--server http://localhost:4000).
"""

import asyncio
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from dotenv import load_dotenv
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from src.client.api import VoiceApiClient
from src.config.settings import LIVEKIT_REQUIRED, Settings
from src.session.exceptions import VoiceSessionError
from src.voice.livekit_client import LiveKitTokenIssuer

console = Console()


def check_local(settings: Settings) -> dict:
    results = {}

    table = Table(title="LiveKit configuration", show_header=True, header_style="bold magenta")
    table.add_column("Variable", style="cyan", no_wrap=True)
    table.add_column("Purpose")
    table.add_column("Status", justify="center")
    for name, label in LIVEKIT_REQUIRED.items():
        present = name not in settings.livekit_missing
        table.add_row(name, label, "[green]✓ set[/green]" if present else "[red]✗ missing[/red]")
    console.print(table)
    results["config_complete"] = settings.livekit is not None

    if settings.livekit is not None:
        issuer = LiveKitTokenIssuer(settings.livekit)
        credential = issuer.create_token("test-room", "test-user", persona="adina")
        claims = issuer.verify(credential.token)
        console.print(f"  [green]✓[/green] Test token signed, expires {credential.expires_at.isoformat()}")
        console.print(f"  grants: {claims['video']}")
        if not settings.livekit.url.startswith("wss://"):
            console.print(f"  [yellow]⚠[/yellow] URL does not use wss://: {settings.livekit.url}")
        results["test_token"] = True
    else:
        results["test_token"] = False

    return results


async def check_server(base_url: str) -> bool:
    async with VoiceApiClient(base_url) as api:
        try:
            data = await api.test_connection()
        except VoiceSessionError as e:
            console.print(f"  [red]✗[/red] Server check failed: {e.message}")
            return False
    console.print(f"  [green]✓[/green] Server reports: {data.get('message')}")
    return True


async def main():
    load_dotenv()
    settings = Settings.from_env()
    results = check_local(settings)

    if "--server" in sys.argv:
        idx = sys.argv.index("--server")
        base_url = sys.argv[idx + 1] if idx + 1 < len(sys.argv) else "http://localhost:4000"
        results["server"] = await check_server(base_url)

    if all(results.values()):
        console.print(Panel("[bold green]LiveKit configuration is valid[/bold green]", border_style="green"))
    else:
        failed = ", ".join(k for k, v in results.items() if not v)
        console.print(Panel(f"[bold red]Failed checks: {failed}[/bold red]", border_style="red"))
        sys.exit(1)


if __name__ == "__main__":
    asyncio.run(main())
