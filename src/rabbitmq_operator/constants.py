"""
Constants used throughout the RabbitMQ operator.

This module defines all constant values used by the operator including:
- Custom resource coordinates
- Child resource name suffixes
- Resource labels and annotations
- Status phases and conditions
- Default configuration values
"""

# Custom resource coordinates
API_GROUP = "rabbitmq.pivotal.io"
API_VERSION = "v1beta1"
API_GROUP_VERSION = f"{API_GROUP}/{API_VERSION}"
CLUSTER_KIND = "RabbitmqCluster"
CLUSTER_PLURAL = "rabbitmqclusters"

# Child resource name suffixes, appended as "<cluster>-<suffix>"
SUFFIX_SERVER = "server"
SUFFIX_SERVER_CONF = "server-conf"
SUFFIX_ADMIN = "admin"
SUFFIX_ERLANG_COOKIE = "erlang-cookie"
SUFFIX_INGRESS = "ingress"
SUFFIX_HEADLESS = "headless"
SUFFIX_ENDPOINT_DISCOVERY = "endpoint-discovery"

# Child resource kinds managed by the operator
KIND_STATEFULSET = "StatefulSet"
KIND_CONFIGMAP = "ConfigMap"
KIND_SECRET = "Secret"
KIND_SERVICE = "Service"
KIND_SERVICE_ACCOUNT = "ServiceAccount"
KIND_ROLE = "Role"
KIND_ROLE_BINDING = "RoleBinding"

# Label constants for resource identification and management
NAME_LABEL_KEY = "app.kubernetes.io/name"
COMPONENT_LABEL_KEY = "app.kubernetes.io/component"
PART_OF_LABEL_KEY = "app.kubernetes.io/part-of"
PART_OF_LABEL_VALUE = "rabbitmq-operator"
COMPONENT_RABBITMQ = "rabbitmq"

# Annotations that belong to client tooling and are never propagated
FILTERED_ANNOTATION_KEYS = frozenset(
    {"kubectl.kubernetes.io/last-applied-configuration"}
)
FILTERED_ANNOTATION_PREFIXES = ("kopf.zalando.org/",)

# Cluster status values (status.clusterStatus)
CLUSTER_STATUS_EMPTY = ""
CLUSTER_STATUS_CREATING = "creating"
CLUSTER_STATUS_CREATED = "created"
CLUSTER_STATUS_ERROR = "error"

# Condition type constants (following Kubernetes conventions)
CONDITION_RECONCILED = "Reconciled"
CONDITION_CHILDREN_CREATED = "ChildrenCreated"

# Condition status constants
CONDITION_TRUE = "True"
CONDITION_FALSE = "False"
CONDITION_UNKNOWN = "Unknown"

# Condition reasons
REASON_CONVERGED = "Converged"
REASON_CREATING = "ChildrenCreating"
REASON_ALL_PRESENT = "AllChildrenPresent"
REASON_VALIDATION_FAILED = "ValidationFailed"
REASON_STORE_ERROR = "StoreError"
REASON_RETRIES_EXHAUSTED = "RetriesExhausted"
REASON_PENDING = "Pending"

# Default configuration values
DEFAULT_RABBITMQ_IMAGE = "rabbitmq:3.8.1"
DEFAULT_REPLICAS = 1
DEFAULT_PERSISTENCE_STORAGE = "10Gi"
DEFAULT_SERVICE_TYPE = "ClusterIP"
VALID_SERVICE_TYPES = ("ClusterIP", "NodePort", "LoadBalancer")

# Container and port layout
CONTAINER_NAME = "rabbitmq"
AMQP_PORT = 5672
MANAGEMENT_PORT = 15672
PROMETHEUS_PORT = 15692
EPMD_PORT = 4369
PERSISTENCE_VOLUME_NAME = "persistence"
CONFIG_VOLUME_NAME = "rabbitmq-config"
ERLANG_COOKIE_VOLUME_NAME = "erlang-cookie"
RABBITMQ_DATA_PATH = "/var/lib/rabbitmq/mnesia/"
RABBITMQ_CONFIG_PATH = "/etc/rabbitmq/"
ERLANG_COOKIE_PATH = "/var/lib/rabbitmq/"

# Secret payload keys
ADMIN_USERNAME_KEY = "username"
ADMIN_PASSWORD_KEY = "password"
ERLANG_COOKIE_KEY = ".erlang.cookie"
ADMIN_USERNAME_LENGTH = 24
ADMIN_PASSWORD_LENGTH = 32
ERLANG_COOKIE_LENGTH = 64

# Retry and timing defaults
DEFAULT_MAX_RETRIES = 3
DEFAULT_BACKOFF_FACTOR = 2.0
DEFAULT_INITIAL_DELAY = 1.0
DEFAULT_REQUEUE_BASE_DELAY = 5.0
DEFAULT_REQUEUE_MAX_DELAY = 300.0
DEFAULT_CREATING_REQUEUE_DELAY = 10.0
DEFAULT_TRANSIENT_RETRY_BUDGET = 5
DEFAULT_WORKERS = 4
DEFAULT_REQUEST_TIMEOUT = 30

# Error messages
ERROR_INVALID_REPLICAS = "replicas must be at least 1, got {replicas}"
ERROR_MISSING_IDENTITY = "RabbitmqCluster is missing {field}"
ERROR_AGGREGATED = "{count} child operation(s) failed: {details}"
