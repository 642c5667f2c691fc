from collections.abc import Generator
from typing import Annotated

from fastapi import Depends
from sqlmodel import Session

from marketplace.clients.product_client import ProductClient, product_client
from marketplace.core.db import engine
from marketplace.core.kafka import KafkaProducerClient, kafka_producer
from marketplace.core.security import Principal, get_current_principal
from marketplace.services.event_publisher import OrderEventPublisher, order_event_publisher
from marketplace.services.order_service import OrderService


def get_db() -> Generator[Session, None, None]:
    with Session(engine) as session:
        yield session


def get_product_client() -> ProductClient:
    return product_client


def get_event_publisher() -> OrderEventPublisher:
    return order_event_publisher


def get_kafka_producer() -> KafkaProducerClient:
    return kafka_producer


SessionDep = Annotated[Session, Depends(get_db)]
PrincipalDep = Annotated[Principal, Depends(get_current_principal)]
ProductClientDep = Annotated[ProductClient, Depends(get_product_client)]
PublisherDep = Annotated[OrderEventPublisher, Depends(get_event_publisher)]
KafkaProducerDep = Annotated[KafkaProducerClient, Depends(get_kafka_producer)]


def get_order_service(
    session: SessionDep, client: ProductClientDep, publisher: PublisherDep
) -> OrderService:
    return OrderService(session, client, publisher)


OrderServiceDep = Annotated[OrderService, Depends(get_order_service)]
