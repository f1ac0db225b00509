import logging
import os

import click
from flask import Flask
from flask_login import LoginManager
from flask_migrate import Migrate

from models.models import db, Member
from controllers.response import error_response, register_error_handlers
from controllers.admin import admin_bp
from controllers.parking import parking_bp
from controllers.rent import rent_bp
from services.settlement import SettlementService
from services.status import sync_spot_statuses
from services.timeutil import utcnow

migrate = Migrate()
login_manager = LoginManager()


@login_manager.user_loader
def load_user(member_id):
    return db.session.get(Member, int(member_id))


@login_manager.unauthorized_handler
def unauthorized():
    return error_response('Unauthorized', 'login required', 401, kind='UNAUTHORIZED')


def create_app(test_config=None):
    app = Flask(__name__)
    app.config.from_mapping(
        SECRET_KEY='dev',
        SQLALCHEMY_DATABASE_URI='sqlite:///parkshare.db',
        SQLALCHEMY_TRACK_MODIFICATIONS=False,
        LOG_LEVEL='INFO',
        CLOCK=utcnow,
        # "today" and calendar dates are evaluated at this UTC offset
        LOCAL_UTC_OFFSET_HOURS=8,
        # rentals this short are free
        BILLING_GRACE_MINUTES=5,
        OVERTIME_SURCHARGE_PER_HALF_HOUR=0,
        OVERTIME_SURCHARGE_BEFORE_CAP=True,
        SETTLE_BACKDATE_TOLERANCE_MINUTES=10,
        RESERVATION_HOLD_MINUTES=30,
        DEFAULT_PRICE_PER_HALF_HOUR=20,
        DEFAULT_DAILY_MAX_PRICE=300,
    )
    app.config.from_prefixed_env()
    if test_config is not None:
        app.config.from_mapping(test_config)

    logging.basicConfig(
        level=app.config['LOG_LEVEL'],
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )

    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)

    register_error_handlers(app)
    app.register_blueprint(rent_bp)
    app.register_blueprint(parking_bp)
    app.register_blueprint(admin_bp)
    register_commands(app)

    with app.app_context():
        db.create_all()

    return app


def register_commands(app):

    @app.cli.command('settle-rents')
    def settle_rents():
        """Force-settle every open rental (run once per billing cycle)."""
        result = SettlementService.from_app(app).run_batch_settlement()
        click.echo(f"settled {result['settled_count']}, failed {len(result['failures'])}, "
                   f"skipped {len(result['skipped'])}")
        for failure in result['failures']:
            click.echo(f"  rent {failure['rent_id']}: {failure['kind']} {failure['message']}")

    @app.cli.command('expire-reservations')
    def expire_reservations():
        """Cancel reservations not confirmed within the hold window."""
        result = SettlementService.from_app(app).expire_reservations()
        click.echo(f"expired {len(result['expired'])} reservation(s)")

    @app.cli.command('sync-spots')
    def sync_spots():
        """Recompute every spot's status."""
        service = SettlementService.from_app(app)
        changed = sync_spot_statuses(service.now(), service.offset_hours)
        click.echo(f"{changed} spot(s) changed")


if __name__ == '__main__':
    port = int(os.environ.get("PORT", 5000))
    create_app().run(host="0.0.0.0", port=port, debug=False)
