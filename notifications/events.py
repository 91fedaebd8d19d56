#Event names and room keys for real-time subscribers.
#Rooms: user:<id>, owner:<id>, delivery:<courier id>, order:<id>, plus one global channel.

ORDERS_REFRESH = "orders:refresh"
ORDER_STATUS = "order:status"
DELIVERY_ASSIGNMENT = "delivery:assignment"
DELIVERY_ASSIGNMENT_CLOSED = "delivery:assignment-closed"

GLOBAL_CHANNEL = "broadcast"


def user_channel(user_id: str) -> str:
    return f"user:{user_id}"


def owner_channel(owner_id: str) -> str:
    return f"owner:{owner_id}"


def courier_channel(courier_id: str) -> str:
    return f"delivery:{courier_id}"


def order_channel(order_id: str) -> str:
    return f"order:{order_id}"
