"""
Handlers package - Contains all Kopf event handlers for RabbitMQ resources.

Handlers never reconcile inline. They map every watch event to the key of
the owning RabbitmqCluster and hand it to the controller's work queue:
- rabbitmqcluster.py: events on RabbitmqCluster objects
- children.py: events on the objects a RabbitmqCluster owns
"""
