"""Construction and lifecycle of the long-lived service handles."""

import logging
from dataclasses import dataclass, field
from typing import Optional

from taskflow.automation.executor import ActionExecutor
from taskflow.automation.matcher import RuleMatcher
from taskflow.cache.invalidation import CacheInvalidator, TaskListCache
from taskflow.cache.sink import CacheSink, InMemoryCacheSink, RedisCacheSink
from taskflow.config import CacheBackend, Settings, StorageBackend
from taskflow.db.base import Database
from taskflow.events.activity import ActivityRecorder
from taskflow.events.bus import EventBus
from taskflow.instance import resolve_instance_id
from taskflow.integrations.circuit_breaker import CircuitBreaker, CircuitBreakerConfig
from taskflow.mail.processor import MailProcessor
from taskflow.mail.service import MailService
from taskflow.mail.transport import HttpMailTransport, LoggingMailTransport, MailTransport
from taskflow.models import QueueName
from taskflow.notifications.realtime import InMemoryRealtimeSink, RealtimeSink, RedisRealtimeSink
from taskflow.notifications.service import NotificationService
from taskflow.queue.base import WorkQueue
from taskflow.queue.inmemory import InMemoryWorkQueue
from taskflow.queue.sql import SqlWorkQueue
from taskflow.queue.worker import QueueWorker
from taskflow.reminders.processor import ReminderProcessor
from taskflow.reminders.scheduler import ReminderScheduler
from taskflow.stores.base import EventStore, NotificationStore, RuleStore
from taskflow.stores.inmemory import InMemoryEventStore, InMemoryNotificationStore, InMemoryRuleStore
from taskflow.stores.sql import SqlEventStore, SqlNotificationStore, SqlRuleStore
from taskflow.tasks.lifecycle import TaskLifecycle
from taskflow.tasks.sweep import LeaseSweeper

logger = logging.getLogger(__name__)


@dataclass
class Services:
    """Every handle the API and the workers share, built once per process."""

    settings: Settings
    instance_id: str
    db: Optional[Database]

    event_store: EventStore
    rule_store: RuleStore
    notification_store: NotificationStore
    queue: WorkQueue
    cache: CacheSink
    realtime: RealtimeSink
    mail_transport: MailTransport

    mail: MailService
    notifications: NotificationService
    matcher: RuleMatcher
    bus: EventBus
    activity: ActivityRecorder
    executor: ActionExecutor
    reminders: ReminderScheduler
    invalidator: CacheInvalidator
    task_lists: TaskListCache
    lifecycle: TaskLifecycle

    workers: list[QueueWorker] = field(default_factory=list)
    sweeper: Optional[LeaseSweeper] = None

    async def start(self, run_workers: bool = True) -> None:
        if self.db is not None:
            await self.db.init()
        await self.bus.start()
        if run_workers:
            for worker in self.workers:
                await worker.start()
            if self.sweeper:
                await self.sweeper.start()
        logger.info(f"Services started (instance {self.instance_id})")

    async def stop(self) -> None:
        if self.sweeper:
            await self.sweeper.stop()
        for worker in self.workers:
            await worker.stop()
        await self.bus.stop()

        for closeable in (self.mail_transport, self.cache, self.realtime):
            try:
                await closeable.close()
            except Exception as e:
                logger.warning(f"Error closing {type(closeable).__name__}: {e}")
        if self.db is not None:
            await self.db.close()
        logger.info("Services stopped")


def _build_mail_transport(settings: Settings) -> MailTransport:
    if not settings.mail_endpoint:
        logger.warning("mail_endpoint not configured, outbound mail is only logged")
        return LoggingMailTransport()

    breaker = None
    if settings.mail_circuit_breaker_enabled:
        breaker = CircuitBreaker(
            "mail",
            CircuitBreakerConfig(
                failure_threshold=settings.mail_circuit_breaker_failure_threshold,
                timeout_seconds=settings.mail_circuit_breaker_timeout_seconds,
                success_threshold=settings.mail_circuit_breaker_success_threshold,
            ),
        )
    return HttpMailTransport(
        settings.mail_endpoint,
        auth_token=settings.mail_auth_token,
        timeout_ms=settings.mail_timeout_ms,
        circuit_breaker=breaker,
    )


def build_services(settings: Settings) -> Services:
    """Wire stores, queue, sinks and processors according to ``settings``."""
    instance_id = resolve_instance_id(settings.instance_id, settings.env.value)
    db = Database(settings.database_url, echo=settings.debug) if settings.uses_database else None

    if settings.storage_backend == StorageBackend.DATABASE:
        event_store: EventStore = SqlEventStore(db)
        rule_store: RuleStore = SqlRuleStore(db)
        notification_store: NotificationStore = SqlNotificationStore(db)
    else:
        event_store = InMemoryEventStore()
        rule_store = InMemoryRuleStore()
        notification_store = InMemoryNotificationStore()

    queue_options = dict(
        default_max_attempts=settings.default_max_attempts,
        default_retry_backoff_seconds=settings.default_retry_backoff_seconds,
        max_retry_backoff_seconds=settings.max_retry_backoff_seconds,
        default_lease_seconds=settings.job_lease_seconds,
    )
    if settings.queue_backend == StorageBackend.DATABASE:
        queue: WorkQueue = SqlWorkQueue(db, **queue_options)
    else:
        queue = InMemoryWorkQueue(**queue_options)

    if settings.cache_backend == CacheBackend.REDIS:
        cache: CacheSink = RedisCacheSink(settings.redis_url)
    else:
        cache = InMemoryCacheSink()

    if settings.realtime_backend == CacheBackend.REDIS:
        realtime: RealtimeSink = RedisRealtimeSink(settings.redis_url)
    else:
        realtime = InMemoryRealtimeSink()

    mail_transport = _build_mail_transport(settings)
    mail = MailService(queue, max_attempts=settings.mail_max_attempts)
    notifications = NotificationService(notification_store, realtime)

    matcher = RuleMatcher(rule_store, queue)
    bus = EventBus(event_store, matcher, max_pending=settings.event_bus_max_pending)
    activity = ActivityRecorder(bus)
    executor = ActionExecutor(mail, notifications, event_store)
    reminders = ReminderScheduler(queue)
    invalidator = CacheInvalidator(cache, namespace=settings.task_list_cache_prefix)
    task_lists = TaskListCache(
        cache,
        ttl_seconds=settings.task_list_cache_ttl_seconds,
        namespace=settings.task_list_cache_prefix,
    )
    lifecycle = TaskLifecycle(activity, reminders, mail, invalidator, realtime)

    processors = {
        QueueName.AUTOMATION: executor,
        QueueName.MAIL: MailProcessor(mail_transport, settings.mail_from),
        QueueName.REMINDERS: ReminderProcessor(realtime),
    }
    workers = [
        QueueWorker(
            queue,
            name.value,
            processor,
            worker_id=f"{instance_id}:{name.value}",
            batch_size=settings.worker_batch_size,
            lease_seconds=settings.job_lease_seconds,
            poll_interval_seconds=settings.worker_poll_interval_seconds,
        )
        for name, processor in processors.items()
    ]
    sweeper = LeaseSweeper(queue, interval_seconds=settings.lease_sweep_interval_seconds)

    return Services(
        settings=settings,
        instance_id=instance_id,
        db=db,
        event_store=event_store,
        rule_store=rule_store,
        notification_store=notification_store,
        queue=queue,
        cache=cache,
        realtime=realtime,
        mail_transport=mail_transport,
        mail=mail,
        notifications=notifications,
        matcher=matcher,
        bus=bus,
        activity=activity,
        executor=executor,
        reminders=reminders,
        invalidator=invalidator,
        task_lists=task_lists,
        lifecycle=lifecycle,
        workers=workers,
        sweeper=sweeper,
    )
