import os

from apscheduler.schedulers.background import BackgroundScheduler

from smartmarks.services.feed import prune_events


scheduler = BackgroundScheduler()


def prune_change_feed(app):
    with app.app_context():
        removed = prune_events(app.config["FEED_RETENTION_HOURS"])
        if removed:
            app.logger.info("Pruned %s expired change feed events", removed)
        return removed


def start_scheduler(app):
    if not app.config.get("SCHEDULER_ENABLED", True):
        return
    if os.environ.get("WERKZEUG_RUN_MAIN") == "false":
        return

    interval_minutes = app.config["FEED_PRUNE_INTERVAL_MINUTES"]
    if not scheduler.get_jobs():
        scheduler.add_job(
            prune_change_feed,
            "interval",
            minutes=interval_minutes,
            kwargs={"app": app},
            id="change_feed_prune",
            replace_existing=True,
        )
        scheduler.start()
