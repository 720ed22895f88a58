"""HTTP-facing components: handlers, executor, envelope and metadata routes."""

from crudgate.api.crud import CrudManager, CrudOps
from crudgate.api.executor import OperationExecutor
from crudgate.api.metadata import MetadataRouter

__all__ = ["CrudManager", "CrudOps", "MetadataRouter", "OperationExecutor"]
