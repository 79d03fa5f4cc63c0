from dataclasses import dataclass

from models.reference import ReferenceTables
from models.taxonomy import Browser, Forest, OperatingSystem


@dataclass(frozen=True)
class ClassificationModel:
    """A fully loaded rule set: reference tables plus both taxonomy forests.

    Built once by the rules loader and read-only afterwards, so one instance can
    be shared by any number of classifiers and threads.
    """
    tables: ReferenceTables
    browsers: Forest[Browser]
    operating_systems: Forest[OperatingSystem]
