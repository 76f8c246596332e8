from dataclasses import dataclass

from reqflow.config import ReqflowConfig
from reqflow.workflows.parser import Catalog


@dataclass
class Data:
    config: ReqflowConfig
    catalog: Catalog

    __slots__ = ("config", "catalog")
