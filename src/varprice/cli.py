import json
import logging
import sys
from typing import NoReturn

import click

from . import __version__ as VERSION
from .config import refresh_config
from .errors import VarPriceError
from .keys import encode_variant_key
from .options import ensure_valid_options, validate_options
from .order import build_order_message, encode_message, format_price, order_lines, whatsapp_url
from .pricing import price_summary
from .schema import load_json_file, prepare_variants_for_save, product_from_record, variants_from_records
from .variants import recompute_variants

logger = logging.getLogger(__name__)


@click.group(invoke_without_command=True)
@click.option("--verbose", is_flag=True, help="Log engine decisions to stderr.")
@click.option("--version", is_flag=True, help="Print the varprice version and exit.")
@click.pass_context
def main(ctx, version, verbose):
    """varprice: product variant and order pricing engine"""
    try:
        refresh_config()
    except VarPriceError as exc:
        _fail(exc)
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")

    if version:
        click.echo(f"varprice version {VERSION}")
        return
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


def _fail(exc: VarPriceError, as_json: bool = False) -> NoReturn:
    """Report a domain error and exit with status 2."""
    if as_json:
        report = {
            "ok": False,
            "error": {"category": exc.category, "code": exc.error_code, "message": exc.explanation, "actionable": exc.actionable},
        }
        click.echo(json.dumps(report, indent=2, sort_keys=True, ensure_ascii=False))
    else:
        click.echo(f"varprice error [{exc.category}:{exc.error_code}]: {exc.explanation}")
    sys.exit(2)


def _unwrap(payload, key):
    """Accept either a bare array or an object holding it under ``key``."""
    if isinstance(payload, dict) and key in payload:
        return payload[key]
    return payload


def _parse_selection(pairs) -> dict:
    selection = {}
    for pair in pairs:
        name, sep, value = pair.partition("=")
        if not sep or not name.strip():
            raise click.BadParameter(f"Expected NAME=VALUE, got '{pair}'", param_hint="--select")
        selection[name.strip()] = value.strip()
    return selection


@main.command()
@click.argument("options_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--json", "json_output", is_flag=True, help="Emit machine-readable result")
def validate(options_file, json_output):
    """Check an option definition list for structural problems."""
    try:
        options = _unwrap(load_json_file(options_file), "options")
    except VarPriceError as exc:
        _fail(exc, json_output)

    result = validate_options(options)
    if json_output:
        click.echo(json.dumps(result.as_dict(), indent=2, sort_keys=True, ensure_ascii=False))
    elif result.valid:
        click.echo(f"OK: {len(options)} option(s) valid")
    else:
        click.echo("INVALID:")
        for error in result.errors:
            click.echo(f"- {error}")
    sys.exit(0 if result.valid else 1)


@main.command()
@click.argument("options_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--existing", "existing_file", type=click.Path(exists=True, dir_okay=False), help="Persisted variants to merge with")
@click.option("--json", "json_output", is_flag=True, help="Emit the merged variant records as JSON")
def generate(options_file, existing_file, json_output):
    """Regenerate variants for OPTIONS_FILE and merge persisted commercial data."""
    try:
        options = _unwrap(load_json_file(options_file), "options")
        ensure_valid_options(options)
        existing = variants_from_records(_unwrap(load_json_file(existing_file), "variants")) if existing_file else []
        logger.debug("Loaded %d persisted variant(s)", len(existing))
        result = recompute_variants(options, existing)
    except VarPriceError as exc:
        _fail(exc, json_output)

    if json_output:
        payload = {
            "variants": prepare_variants_for_save(result.variants),
            "orphaned": prepare_variants_for_save(result.orphaned),
        }
        click.echo(json.dumps(payload, indent=2, sort_keys=True, ensure_ascii=False))
        return

    click.echo(f"Variants: {len(result.variants)}")
    for variant in result.variants:
        click.echo(f"  {variant.title}  price={format_price(variant.price)}  stock={variant.stock_quantity}  key={encode_variant_key(variant.options)}")
    if result.orphaned:
        click.echo(f"Orphaned (not in current options): {len(result.orphaned)}")
        for variant in result.orphaned:
            click.echo(f"  {variant.title}  price={format_price(variant.price)}  stock={variant.stock_quantity}")


@main.command()
@click.argument("product_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--select", "selections", multiple=True, help="Chosen option value, NAME=VALUE (repeatable)")
@click.option("--json", "json_output", is_flag=True, help="Emit machine-readable summary")
def price(product_file, selections, json_output):
    """Show display price, price range and availability of a product."""
    selection = _parse_selection(selections)
    try:
        product = product_from_record(load_json_file(product_file))
    except VarPriceError as exc:
        _fail(exc, json_output)

    summary = price_summary(product, selection or None)
    if json_output:
        click.echo(json.dumps(summary, indent=2, sort_keys=True, ensure_ascii=False))
        return

    if summary["has_price_range"]:
        click.echo(f"Price: {format_price(summary['min_price'])} - {format_price(summary['max_price'])}")
    else:
        click.echo(f"Price: {format_price(summary['display_price'])}")
    if summary["discount_percent"]:
        click.echo(f"Discount: {summary['discount_percent']}%")
    click.echo(f"Available: {'yes' if summary['available'] else 'no'}")

    if selection:
        selected = summary["selected_variant"]
        if selected is None:
            click.echo("Selection: incomplete or invalid")
        else:
            stock = summary["available_stock"]
            click.echo(f"Selection: {selected['title']} at {format_price(selected['price'])}")
            click.echo(f"Selection available: {'yes' if summary['selection_available'] else 'no'}")
            click.echo(f"Stock: {'unlimited' if stock is None else stock}")


@main.command()
@click.argument("cart_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--store", "store_name", required=True, help="Store display name")
@click.option("--customer", "customer_name", default=None, help="Customer name to sign the order with")
@click.option("--phone", default=None, help="Store WhatsApp number; prints the deep link")
@click.option("--encoded", is_flag=True, help="Print the percent-encoded message")
def order(cart_file, store_name, customer_name, phone, encoded):
    """Render CART_FILE into the WhatsApp order message."""
    try:
        lines = order_lines(_unwrap(load_json_file(cart_file), "items"))
    except VarPriceError as exc:
        _fail(exc)

    if not lines:
        click.echo("Error: cart is empty.")
        sys.exit(2)

    message = build_order_message(lines, store_name, customer_name)
    if phone:
        click.echo(whatsapp_url(phone, encode_message(message)))
    elif encoded:
        click.echo(encode_message(message))
    else:
        click.echo(message)


if __name__ == "__main__":
    main()
