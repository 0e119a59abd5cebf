"""CLI commands for the application."""
import click
from datetime import date, datetime
from decimal import Decimal
from flask import current_app
from flask.cli import with_appcontext
from bucketledger.core.errors import LedgerError
from bucketledger.core.extensions import db
from bucketledger.core.money import Money
from bucketledger.core.time import parse_date
from bucketledger.modules.budget.allocation import DistributionService
from bucketledger.modules.budget.migration import migrate_legacy_buckets
from bucketledger.modules.budget.service import BucketService, IncomeService, RecurringExpenseService
from bucketledger.modules.rollover.service import RolloverService
from bucketledger.modules.users.service import UserService


def _money(amount) -> str:
    return Money(amount, current_app.config.get('DEFAULT_CURRENCY', 'USD')).format()


@click.group()
def rollover_cli():
    """Monthly rollover commands."""
    pass


@rollover_cli.command('scheduled')
@click.option('--force', is_flag=True, help='Run even if today is not the rollover day')
@with_appcontext
def rollover_scheduled(force):
    """Scheduled trigger; `flask rollover crontab` prints the matching cron line."""
    now = datetime.now()
    rollover_day = current_app.config['ROLLOVER_DAY']
    if not force and now.day != rollover_day:
        click.echo(f"Today is not rollover day ({rollover_day}); use --force to run anyway")
        return

    summary = RolloverService.run_scheduled_rollover(now=now, force=force)
    click.echo(f"✓ Scheduled rollover at {summary['processed_at']:%Y-%m-%d %H:%M}")
    click.echo(f"  Users: {summary['total_users']}  succeeded: {summary['succeeded']}  failed: {summary['failed']}")
    for result in summary['results']:
        if not result['success']:
            click.echo(f"  ✗ user {result['user_id']}: {result['error']}")
        elif result['performed']:
            click.echo(f"  user {result['user_id']}: {result['buckets_processed']} buckets")
        else:
            click.echo(f"  user {result['user_id']}: skipped ({result['message']})")


def cron_line(config) -> str:
    """Cron entry firing the scheduled rollover at the configured day and time."""
    return (f"{config['ROLLOVER_MINUTE']} {config['ROLLOVER_HOUR']} {config['ROLLOVER_DAY']} * * "
            f"flask rollover scheduled")


@rollover_cli.command('crontab')
@with_appcontext
def rollover_crontab():
    """Print the crontab line for the scheduled rollover."""
    click.echo(cron_line(current_app.config))


@rollover_cli.command('user')
@click.option('--user-id', type=int, required=True, help='User ID')
@click.option('--check', is_flag=True, help='Apply the calendar and once-per-month guard')
@with_appcontext
def rollover_user(user_id, check):
    """Roll over one user's buckets."""
    try:
        if check:
            result = RolloverService.check_and_perform_rollover(user_id)
            if not result['performed']:
                click.echo(f"Skipped: {result['message']}")
                return
        else:
            result = RolloverService.perform_monthly_rollover(user_id)
    except LedgerError as e:
        click.echo(f"Error: {e.message}")
        return

    click.echo(f"✓ Rolled over user {user_id} into {result['period']}")
    click.echo(f"  Buckets processed: {result['buckets_processed']}")
    click.echo(f"  Funding ratio: {result['funding_ratio']:.4f}")
    for entry in result['results']:
        if entry['mode'] == 'save':
            click.echo(f"  {entry['bucket_name']}: +{_money(entry['contribution'])} -> {_money(entry['new_balance'])}")
        else:
            click.echo(f"  {entry['bucket_name']}: carryover {_money(entry['carryover'])}, "
                       f"funded {_money(entry['new_funded'])}")


@rollover_cli.command('history')
@click.option('--user-id', type=int, required=True, help='User ID')
@click.option('--limit', type=int, default=12, help='Number of periods')
@with_appcontext
def rollover_history(user_id, limit):
    """Show past rollover runs."""
    try:
        runs = RolloverService.get_history(user_id, limit=limit)
    except LedgerError as e:
        click.echo(f"Error: {e.message}")
        return

    if not runs:
        click.echo("No rollovers recorded")
        return
    for run in runs:
        click.echo(f"{run.period}  {run.trigger:<9}  buckets={run.buckets_processed}  "
                   f"runs={run.run_count}  at {run.performed_at:%Y-%m-%d %H:%M}")


@click.group()
def distribution_cli():
    """Funding distribution commands."""
    pass


@distribution_cli.command('recalc')
@click.option('--user-id', type=int, required=True, help='User ID')
@with_appcontext
def distribution_recalc(user_id):
    """Recompute funded amounts for a user."""
    try:
        user = UserService.get_user(user_id)
    except LedgerError as e:
        click.echo(f"Error: {e.message}")
        return

    result = DistributionService.calculate_distribution(user_id)
    click.echo(f"✓ Recalculated distribution for user {user_id} ({user.name})")
    click.echo(f"  Total income: {_money(result['total_income'])}")
    click.echo(f"  Total planned: {_money(result['total_planned'])}")
    click.echo(f"  Funding ratio: {result['funding_ratio']:.4f}")
    if result['is_over_planned']:
        click.echo(f"  Over-planned by {_money(result['over_planned_by'])}")


@distribution_cli.command('status')
@click.option('--user-id', type=int, required=True, help='User ID')
@with_appcontext
def distribution_status(user_id):
    """Show the current distribution without changing it."""
    try:
        UserService.get_user(user_id)
    except LedgerError as e:
        click.echo(f"Error: {e.message}")
        return

    status = DistributionService.get_distribution_status(user_id)
    click.echo(f"Distribution for user {user_id}")
    click.echo("=" * 40)
    click.echo(f"  Income:      {_money(status['total_income'])}")
    click.echo(f"  Planned:     {_money(status['total_planned'])}")
    click.echo(f"  Funded:      {_money(status['total_funded'])}")
    click.echo(f"  Unallocated: {_money(status['unallocated'])}")
    if status['is_over_planned']:
        click.echo(f"  Over-planned by {_money(status['over_planned_by'])}")


@click.group()
def recurring_cli():
    """Recurring expense commands."""
    pass


@recurring_cli.command('process')
@click.option('--date', 'date_str', help='Process as of date (YYYY-MM-DD), defaults to today')
@with_appcontext
def recurring_process(date_str):
    """Post recurring expenses due on the given day."""
    try:
        today = parse_date(date_str) or date.today()
    except ValueError as e:
        click.echo(f"Error: {e}")
        return

    result = RecurringExpenseService.process_due(today)
    click.echo(f"✓ Recurring expenses for {today}: {len(result['posted'])} posted, {len(result['skipped'])} skipped")
    for skipped in result['skipped']:
        click.echo(f"  skipped template {skipped['id']}: {skipped['reason']}")


@click.group()
def ledger_cli():
    """Ledger maintenance commands."""
    pass


@ledger_cli.command('migrate-legacy-buckets')
@with_appcontext
def ledger_migrate_legacy_buckets():
    """Convert buckets created before modes existed."""
    with db.engine.begin() as connection:
        migrated = migrate_legacy_buckets(connection)
    click.echo(f"✓ Migrated {migrated} legacy buckets")


@ledger_cli.command('seed-demo')
@click.option('--name', default='Demo User', help='User name')
@with_appcontext
def ledger_seed_demo(name):
    """Create a demo user with income and one bucket of each mode."""
    user = UserService.create_user(name)
    IncomeService.add_income(user.id, {'amount': Decimal('4000'), 'note': 'Salary', 'is_recurring': True})
    BucketService.create_bucket(user.id, {
        'name': 'Groceries', 'mode': 'spend', 'allocation_type': 'amount', 'planned_amount': '600',
    })
    BucketService.create_bucket(user.id, {
        'name': 'Fun money', 'mode': 'spend', 'allocation_type': 'percentage', 'planned_percent': '10',
    })
    BucketService.create_bucket(user.id, {
        'name': 'Insurance', 'mode': 'recurring', 'allocation_type': 'amount', 'planned_amount': '150',
    })
    BucketService.create_bucket(user.id, {
        'name': 'Emergency fund', 'mode': 'save', 'target_amount': '5000',
        'contribution_type': 'percentage', 'contribution_percent': '15', 'goal_alerts': [25, 50, 75],
    })
    click.echo(f"✓ Created demo user {user.name} (ID: {user.id}) with 4 buckets")


def register_cli_commands(app):
    """Register CLI commands with the app."""
    app.cli.add_command(rollover_cli, name='rollover')
    app.cli.add_command(distribution_cli, name='distribution')
    app.cli.add_command(recurring_cli, name='recurring')
    app.cli.add_command(ledger_cli, name='ledger')
