"""Kafka producer, topic administration and consumer for event streaming"""

from aiokafka import AIOKafkaConsumer, AIOKafkaProducer, TopicPartition
from aiokafka.admin import AIOKafkaAdminClient, NewTopic
from aiokafka.errors import KafkaError, TopicAlreadyExistsError, for_code

from marketplace.core.config import settings
from marketplace.core.logging import get_logger

logger = get_logger(__name__)


def order_created_topic() -> NewTopic:
    """Topic layout for order-created events"""
    return NewTopic(
        name=settings.KAFKA_TOPIC_ORDER_CREATED,
        num_partitions=settings.KAFKA_TOPIC_PARTITIONS,
        replication_factor=settings.KAFKA_TOPIC_REPLICAS,
        topic_configs={
            "cleanup.policy": "delete",
            "retention.ms": str(settings.KAFKA_TOPIC_RETENTION_MS),
            "segment.bytes": str(settings.KAFKA_TOPIC_SEGMENT_BYTES),
            "max.message.bytes": str(settings.KAFKA_TOPIC_MAX_MESSAGE_BYTES),
        },
    )


async def ensure_topic(topic: NewTopic) -> bool:
    """
    Create a topic if it does not exist yet

    Returns:
        True if the topic was created, False if it already existed
    """
    admin = AIOKafkaAdminClient(bootstrap_servers=settings.KAFKA_BOOTSTRAP_SERVERS)
    await admin.start()
    try:
        response = await admin.create_topics([topic])
        for topic_error in response.topic_errors:
            name, error_code = topic_error[0], topic_error[1]
            if error_code == TopicAlreadyExistsError.errno:
                logger.info("kafka_topic_exists", topic=name)
                return False
            if error_code != 0:
                raise for_code(error_code)(f"Failed to create topic {name}")
        logger.info(
            "kafka_topic_created",
            topic=topic.name,
            partitions=topic.num_partitions,
            replicas=topic.replication_factor,
        )
        return True
    finally:
        await admin.close()


class KafkaProducerClient:
    """Async Kafka producer configured for durable, deduplicated delivery"""

    def __init__(self):
        self.producer: AIOKafkaProducer | None = None

    async def start(self):
        """Start Kafka producer"""
        try:
            self.producer = AIOKafkaProducer(
                bootstrap_servers=settings.KAFKA_BOOTSTRAP_SERVERS,
                acks=settings.KAFKA_PRODUCER_ACKS,  # Wait for all in-sync replicas
                enable_idempotence=settings.KAFKA_PRODUCER_IDEMPOTENCE,
                request_timeout_ms=settings.KAFKA_REQUEST_TIMEOUT_MS,
                retry_backoff_ms=settings.KAFKA_PRODUCER_RETRY_BACKOFF_MS,
                max_request_size=settings.KAFKA_TOPIC_MAX_MESSAGE_BYTES,
            )
            await self.producer.start()
            logger.info(
                "kafka_producer_started",
                bootstrap_servers=settings.KAFKA_BOOTSTRAP_SERVERS,
                acks=settings.KAFKA_PRODUCER_ACKS,
                idempotence=settings.KAFKA_PRODUCER_IDEMPOTENCE,
            )
        except Exception as e:
            logger.error("kafka_producer_start_failed", error_message=str(e))
            self.producer = None
            raise

    async def stop(self):
        """Stop Kafka producer"""
        if self.producer:
            await self.producer.stop()
            self.producer = None
            logger.info("kafka_producer_stopped")

    @property
    def started(self) -> bool:
        return self.producer is not None


class KafkaConsumerClient:
    """Async Kafka consumer with manual offset commits"""

    def __init__(self, topics: list[str], group_id: str):
        self.topics = topics
        self.group_id = group_id
        self.consumer: AIOKafkaConsumer | None = None

    async def start(self):
        """Start Kafka consumer"""
        try:
            # Values stay raw bytes so malformed payloads surface in the
            # message handler instead of breaking the fetch loop
            self.consumer = AIOKafkaConsumer(
                *self.topics,
                bootstrap_servers=settings.KAFKA_BOOTSTRAP_SERVERS,
                group_id=self.group_id,
                auto_offset_reset="earliest",
                enable_auto_commit=False,
                max_poll_records=100,
                session_timeout_ms=30000,
                max_poll_interval_ms=300000,
            )
            await self.consumer.start()
            logger.info("kafka_consumer_started", topics=self.topics, group_id=self.group_id)
        except KafkaError as e:
            logger.error("kafka_consumer_start_failed", error_message=str(e))
            raise

    async def stop(self):
        """Stop Kafka consumer"""
        if self.consumer:
            await self.consumer.stop()
            logger.info("kafka_consumer_stopped")

    async def consume_messages(self):
        """Async generator yielding messages"""
        if not self.consumer:
            raise RuntimeError("Kafka consumer not started")

        async for message in self.consumer:
            yield message

    async def commit(self, message) -> None:
        """Commit the offset following this message"""
        if self.consumer:
            tp = TopicPartition(message.topic, message.partition)
            await self.consumer.commit({tp: message.offset + 1})

    def seek(self, message) -> None:
        """Rewind the partition so this message is fetched again"""
        if self.consumer:
            tp = TopicPartition(message.topic, message.partition)
            self.consumer.seek(tp, message.offset)


# Global Kafka instances
kafka_producer = KafkaProducerClient()
