"""CLI command tests."""
from bucketledger.core.cli import cron_line
from bucketledger.modules.rollover.models import RolloverRun


def test_default_schedule(app):
    assert cron_line(app.config) == '1 0 1 * * flask rollover scheduled'


def test_crontab_uses_configured_schedule(app):
    app.config.update(ROLLOVER_DAY=2, ROLLOVER_HOUR=3, ROLLOVER_MINUTE=15)

    result = app.test_cli_runner().invoke(args=['rollover', 'crontab'])

    assert result.exit_code == 0
    assert result.output.strip() == '15 3 2 * * flask rollover scheduled'


def test_rollover_user_command(app, user, make_bucket):
    make_bucket(user.id, 'Food', planned_amount='10')

    result = app.test_cli_runner().invoke(args=['rollover', 'user', '--user-id', str(user.id)])

    assert result.exit_code == 0
    assert RolloverRun.query.filter_by(user_id=user.id).count() == 1
