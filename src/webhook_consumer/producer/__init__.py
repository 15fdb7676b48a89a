"""Client for the upstream webhook producer API."""

from webhook_consumer.producer.client import ProducerClient

__all__ = ["ProducerClient"]
