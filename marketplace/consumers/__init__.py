from marketplace.consumers.order_consumer import MessageState, OrderEventConsumer

__all__ = ["MessageState", "OrderEventConsumer"]
