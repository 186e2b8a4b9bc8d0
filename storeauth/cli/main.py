"""storeauth CLI - Main commands."""
import asyncio
import logging
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

app = typer.Typer(
    name="storeauth",
    help="App Store account sign-in CLI",
    add_completion=False
)
console = Console()


def run_async(coro):
    """Run async function."""
    return asyncio.run(coro)


def _account_table(account) -> Table:
    table = Table(title="Signed in")
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    table.add_row("Email", account.email)
    table.add_row("Name", account.display_name or "-")
    table.add_row("Account ID", account.provider_account_id or "-")
    table.add_row("DSID", account.directory_services_id or "-")
    table.add_row("Store front", account.store_region_code or "-")
    table.add_row("Pod", account.pod_hint or "-")
    table.add_row("Cookies", str(len(account.cookies)))
    return table


async def _choose_phone(flow) -> None:
    """Let the user pick a phone when several are registered."""
    phones = flow.phones
    for index, phone in enumerate(phones, 1):
        console.print(f"  [bold]{index}[/bold]. {phone.dialed_number}")
    choice = typer.prompt("Send code to", default=1, type=int)
    if not 1 <= choice <= len(phones):
        console.print("[red]Invalid choice[/red]")
        raise typer.Exit(1)
    await flow.send(phones[choice - 1].id)


@app.callback()
def main():
    """App Store account sign-in CLI."""


@app.command()
def login(
    email: str = typer.Option(None, "--email", "-e", help="Account email"),
    password: str = typer.Option(None, "--password", "-p", help="Account password"),
    device_id: str = typer.Option(..., "--device-id", "-d", help="Device identifier (guid)"),
    sms: bool = typer.Option(False, "--sms", help="Use SMS for the second factor"),
    code: Optional[str] = typer.Option(None, "--code", "-c", help="Device 2FA code"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
):
    """Sign in and show account details. Nothing is stored."""
    from storeauth import (
        StoreAuthClient,
        StoreAuthError,
        VerificationRequired,
        AccountLocked,
        setup_logging,
    )
    
    logging.basicConfig(format="%(levelname)s %(name)s: %(message)s")
    setup_logging(logging.DEBUG if verbose else logging.WARNING)
    
    if not email:
        email = typer.prompt("Email")
    if not password:
        password = typer.prompt("Password", hide_input=True)
    
    async def do_login():
        async with StoreAuthClient() as client:
            try:
                try:
                    return await client.authenticate(email, password, code=code, device_id=device_id)
                except VerificationRequired:
                    console.print("[yellow]Two-factor verification required[/yellow]")
                
                if not sms:
                    device_code = typer.prompt("Verification code")
                    return await client.authenticate(email, password, code=device_code, device_id=device_id)
                
                flow = client.sms_flow(email, password)
                result = await flow.start()
                if result.code_delivery_locked:
                    console.print("[red]Security code delivery is locked for this account[/red]")
                    raise typer.Exit(1)
                if result.too_many_codes_sent:
                    console.print("[red]Too many codes sent; try again later[/red]")
                    raise typer.Exit(1)
                if result.cooldown_active:
                    console.print("[red]Security code cooldown active; try again later[/red]")
                    raise typer.Exit(1)
                
                if not flow.sms_sent:
                    await _choose_phone(flow)
                console.print(f"Code sent to [bold]{flow.sent_to}[/bold]")
                sms_code = typer.prompt("SMS code")
                return await client.complete_sms_sign_in(flow, sms_code, device_id)
            except AccountLocked as e:
                console.print(f"[red]Account locked: {e}[/red]")
                raise typer.Exit(1)
            except StoreAuthError as e:
                console.print(f"[red]Sign-in failed: {e}[/red]")
                raise typer.Exit(1)
    
    account = run_async(do_login())
    console.print(_account_table(account))


if __name__ == "__main__":
    app()
