import os
import json
import asyncio
import pika
import logging
from uuid import UUID
from datetime import datetime
from typing import Dict, Optional
from app.db.postgres import AsyncSessionLocal
from app.devices.exceptions import DeviceNotFoundException
from app.inactivity.exceptions import NoActiveCheckInException
from app.inactivity.responses import ResponseRecorder
from app.motion_events.schemas import DetectionState
from app.motion_events.service import EventIngestor

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

QUEUE_NAME = 'inactivity_motion_events'
MOTION_ROUTING_KEY = 'motion.changed'
RESPONSE_ROUTING_KEY = 'checkin.response'


class MotionEventConsumer:

    def __init__(self):
        self.host = os.getenv("RABBITMQ_HOST")
        self.port = int(os.getenv("RABBITMQ_PORT", "5672"))
        self.user = os.getenv("RABBITMQ_USER")
        self.password = os.getenv("RABBITMQ_PASSWORD")
        self.sensor_exchange = os.getenv("RABBITMQ_SENSOR_EXCHANGE", "sensors.events")
        self.connection = None
        self.channel = None

    def connect(self):
        credentials = pika.PlainCredentials(self.user, self.password)
        parameters = pika.ConnectionParameters(
            host=self.host,
            port=self.port,
            credentials=credentials,
            heartbeat=600,
            blocked_connection_timeout=300
        )

        self.connection = pika.BlockingConnection(parameters)
        self.channel = self.connection.channel()

        self.channel.exchange_declare(
            exchange=self.sensor_exchange,
            exchange_type='topic',
            durable=True
        )

        self.channel.queue_declare(queue=QUEUE_NAME, durable=True)

        for routing_key in (MOTION_ROUTING_KEY, RESPONSE_ROUTING_KEY):
            self.channel.queue_bind(
                exchange=self.sensor_exchange,
                queue=QUEUE_NAME,
                routing_key=routing_key
            )

        return QUEUE_NAME

    def _get_value(self, data: Dict, *keys: str):
        for key in keys:
            if key in data and data[key] is not None:
                return data[key]
        return None

    def _parse_datetime(self, value: Optional[str]) -> Optional[datetime]:
        if not value:
            return None
        return datetime.fromisoformat(value.replace("Z", "+00:00"))

    async def process_motion_changed(self, event_data: Dict):
        """Feed a presence change into the ingestor."""
        external_id = self._get_value(event_data, "external_id", "externalId", "deviceMac")
        if not external_id:
            raise ValueError("Missing external_id in motion event")

        state = DetectionState(self._get_value(event_data, "detection_state", "detectionState"))
        sensor_timestamp = self._parse_datetime(
            self._get_value(event_data, "sensor_timestamp", "sensorTimestamp")
        )

        async with AsyncSessionLocal() as session:
            ingestor = EventIngestor(session)
            result = await ingestor.ingest(
                external_id=external_id,
                detection_state=state,
                sensor_timestamp=sensor_timestamp,
                raw_payload=event_data,
            )

        logger.info(f"Motion event processed - Device: {external_id}, Action: {result['action'].value}")

    async def process_checkin_response(self, event_data: Dict):
        """Record a patient's reply relayed by a messaging channel."""
        patient_id = self._get_value(event_data, "patient_id", "patientId")
        if not patient_id:
            raise ValueError("Missing patient_id in check-in response")

        async with AsyncSessionLocal() as session:
            recorder = ResponseRecorder(session)
            result = await recorder.record_response(
                patient_id=UUID(patient_id),
                response_text=self._get_value(event_data, "response_text", "responseText"),
            )

        logger.info(f"Check-in response processed - Patient: {patient_id}, Session: {result['session_id']}")

    async def handle_message(self, message: Dict):
        event_type = message.get('event')
        event_data = message.get('data', message)

        if event_type == MOTION_ROUTING_KEY:
            await self.process_motion_changed(event_data)
        elif event_type == RESPONSE_ROUTING_KEY:
            await self.process_checkin_response(event_data)
        else:
            logger.warning(f"Unknown event type: {event_type}")

    def callback(self, ch, method, properties, body):
        """Process incoming messages from the queue."""
        try:
            message = json.loads(body)
            asyncio.run(self.handle_message(message))
            ch.basic_ack(delivery_tag=method.delivery_tag)

        except (DeviceNotFoundException, NoActiveCheckInException) as e:
            # Nothing to retry: unknown/inactive sensor or no check-in awaiting a reply
            logger.warning(f"Dropping message: {e.detail}")
            ch.basic_ack(delivery_tag=method.delivery_tag)
        except ValueError as e:
            logger.error(f"Malformed message: {e}")
            ch.basic_ack(delivery_tag=method.delivery_tag)
        except Exception as e:
            logger.error(f"Error processing message: {e}")
            ch.basic_nack(delivery_tag=method.delivery_tag, requeue=True)

    def start_consuming(self):
        """Start consuming messages from RabbitMQ."""
        try:
            queue_name = self.connect()

            logger.info("="*60)
            logger.info("Motion Inactivity Service - Sensor Event Consumer")
            logger.info(f"Connected to RabbitMQ: {self.host}:{self.port}")
            logger.info(f"Listening to queue: {queue_name}")
            logger.info(f"Routing keys: {MOTION_ROUTING_KEY}, {RESPONSE_ROUTING_KEY}")
            logger.info("="*60)

            self.channel.basic_qos(prefetch_count=1)
            self.channel.basic_consume(
                queue=queue_name,
                on_message_callback=self.callback
            )

            self.channel.start_consuming()

        except KeyboardInterrupt:
            logger.info("Stopping consumer...")
            self.stop()
        except Exception as e:
            logger.error(f"Consumer error: {e}")
            self.stop()
            raise

    def stop(self):
        """Stop consuming and close connections."""
        if self.channel and not self.channel.is_closed:
            self.channel.stop_consuming()
            self.channel.close()
        if self.connection and not self.connection.is_closed:
            self.connection.close()
        logger.info("Consumer stopped")


def start_consumer():
    """Entry point for starting the motion event consumer."""
    consumer = MotionEventConsumer()
    consumer.start_consuming()
