"""Main entry point for the bitrefill command line.

A thin demo harness over BitrefillClient: loads configuration, sets up
logging, builds the client (Composition Root) and prints API results as JSON.
"""

import asyncio
import logging
from pathlib import Path
from typing import Any, Coroutine, Optional

import typer
from rich.console import Console
from typing_extensions import Annotated

from bitrefill.core.client import BitrefillClient, create_client
from bitrefill.domain.exceptions import BitrefillError
from bitrefill.domain.models.invoice import PaymentType, redemption_codes
from bitrefill.infrastructure.config.settings import (
    DEFAULT_CONFIG_FILE, get_api_key, get_api_secret, get_base_url, get_config,
    get_pagination_config, get_polling_config, get_request_timeout, load_configuration
)
from bitrefill.infrastructure.monitoring.logger_setup import level_from_name, setup_logging

logger = logging.getLogger(__name__)

console = Console()
err_console = Console(stderr=True)

app = typer.Typer(
    name="bitrefill",
    help="Browse the Bitrefill catalog, check your balance and buy with invoices.",
    add_completion=False,
)


def create_client_from_config() -> BitrefillClient:
    """Builds the client from loaded configuration.

    Raises:
        BitrefillError: If credentials are missing.
    """
    return create_client(
        api_key=get_api_key() or "",
        api_secret=get_api_secret() or "",
        base_url=get_base_url(),
        timeout=get_request_timeout(),
        pagination=get_pagination_config(),
        polling=get_polling_config(),
    )


def run_async(coro: Coroutine[Any, Any, Any]) -> Any:
    """Runs a command coroutine, turning client errors into exit code 1."""
    try:
        return asyncio.run(coro)
    except BitrefillError as e:
        logger.debug(f"Command failed: {e}", exc_info=True)
        err_console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(code=1)


async def _call(method_name: str, *args: Any, **kwargs: Any) -> Any:
    client = create_client_from_config()
    async with client:
        return await getattr(client, method_name)(*args, **kwargs)


def _print(data: Any) -> None:
    console.print_json(data=data)


# --- Shared options ---

IncludeTestOption = Annotated[
    Optional[bool],
    typer.Option("--include-test-products/--exclude-test-products", help="Include test products in the catalog."),
]


# --- CLI Commands ---

@app.command()
def products(
    start: Annotated[Optional[int], typer.Option(help="Offset of the first product.")] = None,
    limit: Annotated[Optional[int], typer.Option(help="Page size.")] = None,
    include_test_products: IncludeTestOption = None,
):
    """Fetch one page of products."""
    _print(run_async(_call("get_products", start=start, limit=limit, include_test_products=include_test_products)))


@app.command(name="all-products")
def all_products(
    include_test_products: IncludeTestOption = None,
    names_only: Annotated[bool, typer.Option("--names-only", help="Print product names only.")] = False,
):
    """Fetch the whole catalog."""
    result = run_async(_call("get_all_products", include_test_products=include_test_products))
    _print([p.get("name") for p in result] if names_only else result)


@app.command()
def balance():
    """Show the account balance."""
    _print(run_async(_call("get_account_balance")))


@app.command(name="invoice-create")
def invoice_create(
    product_id: Annotated[str, typer.Option("--product-id", help="Product to buy.")],
    value: Annotated[float, typer.Option(help="Package value.")],
    quantity: Annotated[int, typer.Option(help="Number of items.")] = 1,
    payment_type: Annotated[PaymentType, typer.Option("--payment-type", help="How to pay.")] = PaymentType.AUTO_BALANCE,
    wait: Annotated[bool, typer.Option("--wait", help="Wait for delivery (auto balance payments only).")] = False,
    refund_address: Annotated[Optional[str], typer.Option(help="Refund address, required for bitcoin.")] = None,
    codes_only: Annotated[bool, typer.Option("--codes-only", help="Print redemption codes only.")] = False,
):
    """Create an invoice for a single product."""
    invoice = run_async(_call(
        "create_invoice",
        products=[{"product_id": product_id, "value": value, "quantity": quantity}],
        payment_type=payment_type,
        wait_for_completion=wait,
        refund_address=refund_address,
    ))
    _print(redemption_codes(invoice) if codes_only else invoice)


@app.command(name="invoice-get")
def invoice_get(
    invoice_id: Annotated[str, typer.Argument(help="Invoice id.")],
):
    """Show an invoice."""
    _print(run_async(_call("get_invoice", invoice_id)))


@app.callback()
def main_callback(
    log_level: Annotated[Optional[str], typer.Option("--log-level", help="DEBUG, INFO, WARNING, ...")] = None,
    config_file: Annotated[Path, typer.Option("--config", help="YAML configuration file.")] = DEFAULT_CONFIG_FILE,
):
    """Load configuration and logging before any command runs."""
    load_configuration(config_file=config_file)
    setup_logging(
        log_level=level_from_name(log_level or get_config("logging.level")),
        log_file=get_config("logging.file"),
    )


def cli_entry_point():
    """Function called by the `bitrefill` console script."""
    app()


if __name__ == "__main__":
    cli_entry_point()
