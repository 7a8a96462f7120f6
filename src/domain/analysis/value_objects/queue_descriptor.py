"""
QueueDescriptor Value Object

Static broker coordinates of one job family: where requests are published
and where worker replies are read from.
"""

from pydantic import BaseModel, Field


class QueueDescriptor(BaseModel):
    """
    Immutable exchange / routing key / response queue triple for a job family.

    Two families exist: "composition" (product composition analysis, image or
    text) and "porosity" (hair porosity analysis, image only).

    Attributes:
        family: Job family name (used in logs and route wiring)
        exchange_name: Direct exchange that receives requests and replies
        routing_key: Routing key binding the request queue
        response_queue_name: Queue the workers deliver results to
        request_queue_name: Queue the workers consume requests from
        response_routing_key: Routing key binding the response queue

    Examples:
        >>> descriptor = QueueDescriptor(
        ...     family="composition",
        ...     exchange_name="consistence.exchange",
        ...     routing_key="consistence.request.bind",
        ...     response_queue_name="consistence.responses",
        ...     request_queue_name="consistence.requests",
        ...     response_routing_key="consistence.response.bind",
        ... )
    """

    family: str = Field(description="Job family name")
    exchange_name: str = Field(description="Direct exchange name")
    routing_key: str = Field(description="Request routing key")
    response_queue_name: str = Field(description="Response queue name")
    request_queue_name: str = Field(description="Request queue name")
    response_routing_key: str = Field(description="Response routing key")

    model_config = {"frozen": True}
