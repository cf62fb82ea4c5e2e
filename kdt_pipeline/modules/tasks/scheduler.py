from taskiq.schedule_sources import LabelScheduleSource
from taskiq import TaskiqScheduler

from kdt_pipeline.modules.tasks.broker import broker
from kdt_pipeline.modules.tasks import tasks  # noqa: F401  регистрирует задачи с расписанием


scheduler = TaskiqScheduler(
    broker=broker,
    sources=[LabelScheduleSource(broker)],
)
