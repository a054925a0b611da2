"""Application layer: ports and use cases for the AMQP transport."""
