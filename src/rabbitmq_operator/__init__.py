"""
RabbitMQ Operator - Kopf-based operator managing RabbitmqCluster resources.

The operator converges each RabbitmqCluster into an owned set of
Kubernetes objects (StatefulSet, Services, ConfigMap, Secrets and RBAC)
and reports cluster status back on the custom resource.
"""

__version__ = "0.1.0"
