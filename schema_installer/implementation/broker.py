"""
Обработчики Service Broker и секционирования.
"""
from __future__ import annotations

from ..core.models import SchemaObjectKind
from .base import CatalogImpl


class QueueImpl(CatalogImpl):
    KINDS = (SchemaObjectKind.QUEUE,)
    NAME_PREFIX = "QUEUE"
    CATALOG_QUERY = "SELECT COUNT(*) FROM sys.service_queues WHERE name = ?"
    DROP_TEMPLATE = "DROP QUEUE {0}"


class ServiceImpl(CatalogImpl):
    KINDS = (SchemaObjectKind.SERVICE,)
    NAME_PREFIX = "SERVICE"
    CATALOG_QUERY = "SELECT COUNT(*) FROM sys.services WHERE name = ?"
    DROP_TEMPLATE = "DROP SERVICE {0}"


class MessageTypeImpl(CatalogImpl):
    KINDS = (SchemaObjectKind.MESSAGE_TYPE,)
    CATALOG_QUERY = "SELECT COUNT(*) FROM sys.service_message_types WHERE name = ?"
    DROP_TEMPLATE = "DROP MESSAGE TYPE {0}"


class ContractImpl(CatalogImpl):
    KINDS = (SchemaObjectKind.CONTRACT,)
    CATALOG_QUERY = "SELECT COUNT(*) FROM sys.service_contracts WHERE name = ?"
    DROP_TEMPLATE = "DROP CONTRACT {0}"


class BrokerPriorityImpl(CatalogImpl):
    KINDS = (SchemaObjectKind.BROKER_PRIORITY,)
    CATALOG_QUERY = "SELECT COUNT(*) FROM sys.conversation_priorities WHERE name = ?"
    DROP_TEMPLATE = "DROP BROKER PRIORITY {0}"


class PartitionFunctionImpl(CatalogImpl):
    KINDS = (SchemaObjectKind.PARTITION_FUNCTION,)
    CATALOG_QUERY = "SELECT COUNT(*) FROM sys.partition_functions WHERE name = ?"
    DROP_TEMPLATE = "DROP PARTITION FUNCTION {0}"


class PartitionSchemeImpl(CatalogImpl):
    KINDS = (SchemaObjectKind.PARTITION_SCHEME,)
    CATALOG_QUERY = "SELECT COUNT(*) FROM sys.partition_schemes WHERE name = ?"
    DROP_TEMPLATE = "DROP PARTITION SCHEME {0}"
