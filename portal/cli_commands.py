"""
Flask CLI commands for portal operators.

Commands:
- flask init-db: Create tables and the order number sequence
- flask create-offer: Create a promotional code
- flask stock-report: Print inventory rows at low or critical level
"""

import click
from decimal import Decimal, InvalidOperation
from sqlalchemy.exc import SQLAlchemyError
from portal.database import db_session, create_all
from portal.models import Offer, OfferProduct, OrderSequence, Product
from portal.services.inventory_service import list_inventory, inventory_to_dict
from portal.services.order_service import SEQUENCE_NAME
from portal.services.stock_service import StockLevel


def init_cli_commands(app):
    """Register CLI commands with Flask app."""

    @app.cli.command('init-db')
    def init_db_command():
        """Create all tables and seed the order number sequence."""
        try:
            create_all()
            if db_session.get(OrderSequence, SEQUENCE_NAME) is None:
                db_session.add(OrderSequence(name=SEQUENCE_NAME, last_value=0))
                db_session.commit()
            click.echo(click.style('✅ Database initialized.', fg='green', bold=True))
        except SQLAlchemyError as e:
            db_session.rollback()
            click.echo(click.style(f'❌ Database initialization failed: {e}', fg='red'))
            raise SystemExit(1)

    @app.cli.command('create-offer')
    @click.option('--code', required=True, help='Promotional code clients will type')
    @click.option('--percent', required=True, help='Discount percentage, e.g. 10 or 12.5')
    @click.option('--title', default=None, help='Internal title')
    @click.option('--product-id', 'product_ids', multiple=True, type=int,
                  help='Restrict the code to these products (repeatable). Omit for a global code.')
    @click.option('--inactive', is_flag=True, help='Create the offer disabled')
    def create_offer(code, percent, title, product_ids, inactive):
        """Create a promotional code, global or scoped to products."""
        code = code.strip()
        try:
            percent = Decimal(percent.replace(',', '.'))
        except InvalidOperation:
            click.echo(click.style(f'❌ Invalid percentage: {percent}', fg='red'))
            raise SystemExit(1)
        if not percent.is_finite() or not Decimal('0') < percent <= Decimal('100'):
            click.echo(click.style(f'❌ Percentage must be above 0 and at most 100, got {percent}', fg='red'))
            raise SystemExit(1)

        if db_session.query(Offer).filter_by(discount_code=code).first():
            click.echo(click.style(f'❌ An offer with code {code} already exists.', fg='red'))
            raise SystemExit(1)

        found = {p.id for p in db_session.query(Product).filter(Product.id.in_(product_ids)).all()} if product_ids else set()
        missing = set(product_ids) - found
        if missing:
            click.echo(click.style(f'❌ Unknown product ids: {sorted(missing)}', fg='red'))
            raise SystemExit(1)

        try:
            offer = Offer(title=title, discount_code=code, discount_percent=percent, is_active=not inactive)
            offer.offer_products = [OfferProduct(product_id=pid) for pid in sorted(found)]
            db_session.add(offer)
            db_session.commit()
        except SQLAlchemyError as e:
            db_session.rollback()
            click.echo(click.style(f'❌ Could not create offer: {e}', fg='red'))
            raise SystemExit(1)

        scope = 'global' if offer.is_global else f'{len(found)} product(s)'
        click.echo(click.style(f'✅ Offer {code} created ({percent}%, {scope}).', fg='green', bold=True))

    @app.cli.command('stock-report')
    @click.option('--client-id', type=int, default=None, help='Only this client')
    @click.option('--all', 'show_all', is_flag=True, help='Include rows with healthy stock')
    def stock_report(client_id, show_all):
        """List inventory rows at low or critical level."""
        rows = [inventory_to_dict(row) for row in list_inventory(db_session, client_id=client_id)]
        if not show_all:
            rows = [row for row in rows if row['stock_level'] != StockLevel.HIGH.value]

        if not rows:
            click.echo(click.style('✅ No stock alerts.', fg='green'))
            return

        colors = {StockLevel.CRITICAL.value: 'red', StockLevel.LOW.value: 'yellow', StockLevel.HIGH.value: 'green'}
        for row in rows:
            line = (f"[{row['stock_level'].upper():8}] client={row['client_id']} "
                    f"{row['name']}: {row['quantity']} "
                    f"(alert={row['alert_threshold']}, critical={row['critical_threshold']})")
            if row['thresholds_inverted']:
                line += ' thresholds inverted'
            click.echo(click.style(line, fg=colors[row['stock_level']]))
