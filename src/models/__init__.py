from sqlmodel import Field, Relationship, SQLModel
from .platforms import Platform, PlatformBase
from .snapshots import Snapshot, SnapshotBase
