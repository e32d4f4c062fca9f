"""
Identity tables feature.

Declares the user, role, claim, login and token tables on the model's
metadata when the model is built. Table names default to the conventional
``AspNet*`` names so an existing identity database can be mapped as is.

The tables are plain SQLAlchemy Core tables; map classes onto them with
``__table__ = processor.tables.users`` or query them directly.

Example:
    >>> processor = IdentityFeatureProcessor(IdentityConfiguration(users_table_name="users"))
    >>> build_model(Base, [processor])
    >>> processor.tables.users.name
    'users'
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, fields
from typing import TYPE_CHECKING, NamedTuple

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    PrimaryKeyConstraint,
    String,
    Table,
    Text,
)

from dbfeatures.exceptions import ConfigurationError
from dbfeatures.features.processor import BaseFeatureProcessor

if TYPE_CHECKING:
    from sqlalchemy.orm import registry

    from dbfeatures.entities import EntityRegistry

logger = logging.getLogger(__name__)

ID_LENGTH = 36
NAME_LENGTH = 256
KEY_LENGTH = 128


@dataclass(frozen=True)
class IdentityConfiguration:
    """Names of the identity tables."""

    users_table_name: str = "AspNetUsers"
    roles_table_name: str = "AspNetRoles"
    user_claims_table_name: str = "AspNetUserClaims"
    user_roles_table_name: str = "AspNetUserRoles"
    user_logins_table_name: str = "AspNetUserLogins"
    role_claims_table_name: str = "AspNetRoleClaims"
    user_tokens_table_name: str = "AspNetUserTokens"

    def __post_init__(self) -> None:
        names = [getattr(self, f.name) for f in fields(self)]
        if any(not name for name in names):
            raise ConfigurationError("Identity table names must be non-empty")
        if len(set(names)) != len(names):
            raise ConfigurationError(f"Identity table names must be distinct, got {names}")


class IdentityTables(NamedTuple):
    """The declared identity tables."""

    users: Table
    roles: Table
    user_claims: Table
    user_roles: Table
    user_logins: Table
    role_claims: Table
    user_tokens: Table


def create_identity_tables(
    metadata: MetaData, configuration: IdentityConfiguration | None = None
) -> IdentityTables:
    """
    Declare the identity tables on ``metadata``.

    Raises:
        ConfigurationError: If a table with one of the names already exists
    """
    config = configuration or IdentityConfiguration()
    for f in fields(config):
        name = getattr(config, f.name)
        if name in metadata.tables:
            raise ConfigurationError(f"Table {name!r} is already defined on the metadata")

    users_fk = f"{config.users_table_name}.Id"
    roles_fk = f"{config.roles_table_name}.Id"

    users = Table(
        config.users_table_name,
        metadata,
        Column("Id", String(ID_LENGTH), primary_key=True),
        Column("UserName", String(NAME_LENGTH)),
        Column("NormalizedUserName", String(NAME_LENGTH)),
        Column("Email", String(NAME_LENGTH)),
        Column("NormalizedEmail", String(NAME_LENGTH)),
        Column("EmailConfirmed", Boolean, nullable=False, default=False),
        Column("PasswordHash", Text),
        Column("SecurityStamp", Text),
        Column("ConcurrencyStamp", Text),
        Column("PhoneNumber", Text),
        Column("PhoneNumberConfirmed", Boolean, nullable=False, default=False),
        Column("TwoFactorEnabled", Boolean, nullable=False, default=False),
        Column("LockoutEnd", DateTime(timezone=True)),
        Column("LockoutEnabled", Boolean, nullable=False, default=False),
        Column("AccessFailedCount", Integer, nullable=False, default=0),
        Index("UserNameIndex", "NormalizedUserName", unique=True),
        Index("EmailIndex", "NormalizedEmail"),
    )

    roles = Table(
        config.roles_table_name,
        metadata,
        Column("Id", String(ID_LENGTH), primary_key=True),
        Column("Name", String(NAME_LENGTH)),
        Column("NormalizedName", String(NAME_LENGTH)),
        Column("ConcurrencyStamp", Text),
        Index("RoleNameIndex", "NormalizedName", unique=True),
    )

    user_claims = Table(
        config.user_claims_table_name,
        metadata,
        Column("Id", Integer, primary_key=True, autoincrement=True),
        Column("UserId", String(ID_LENGTH), ForeignKey(users_fk, ondelete="CASCADE"), nullable=False),
        Column("ClaimType", Text),
        Column("ClaimValue", Text),
    )

    user_roles = Table(
        config.user_roles_table_name,
        metadata,
        Column("UserId", String(ID_LENGTH), ForeignKey(users_fk, ondelete="CASCADE"), nullable=False),
        Column("RoleId", String(ID_LENGTH), ForeignKey(roles_fk, ondelete="CASCADE"), nullable=False),
        PrimaryKeyConstraint("UserId", "RoleId"),
    )

    user_logins = Table(
        config.user_logins_table_name,
        metadata,
        Column("LoginProvider", String(KEY_LENGTH), nullable=False),
        Column("ProviderKey", String(KEY_LENGTH), nullable=False),
        Column("ProviderDisplayName", Text),
        Column("UserId", String(ID_LENGTH), ForeignKey(users_fk, ondelete="CASCADE"), nullable=False),
        PrimaryKeyConstraint("LoginProvider", "ProviderKey"),
    )

    role_claims = Table(
        config.role_claims_table_name,
        metadata,
        Column("Id", Integer, primary_key=True, autoincrement=True),
        Column("RoleId", String(ID_LENGTH), ForeignKey(roles_fk, ondelete="CASCADE"), nullable=False),
        Column("ClaimType", Text),
        Column("ClaimValue", Text),
    )

    user_tokens = Table(
        config.user_tokens_table_name,
        metadata,
        Column("UserId", String(ID_LENGTH), ForeignKey(users_fk, ondelete="CASCADE"), nullable=False),
        Column("LoginProvider", String(KEY_LENGTH), nullable=False),
        Column("Name", String(KEY_LENGTH), nullable=False),
        Column("Value", Text),
        PrimaryKeyConstraint("UserId", "LoginProvider", "Name"),
    )

    return IdentityTables(
        users=users,
        roles=roles,
        user_claims=user_claims,
        user_roles=user_roles,
        user_logins=user_logins,
        role_claims=role_claims,
        user_tokens=user_tokens,
    )


class IdentityFeatureProcessor(BaseFeatureProcessor):
    """Declares the identity tables when the model is built."""

    def __init__(self, configuration: IdentityConfiguration | None = None) -> None:
        self.configuration = configuration or IdentityConfiguration()
        self._tables: IdentityTables | None = None

    @property
    def tables(self) -> IdentityTables:
        """
        The declared tables.

        Raises:
            RuntimeError: If the model has not been built yet
        """
        if self._tables is None:
            raise RuntimeError("Identity tables are declared when the model is built")
        return self._tables

    def on_model_creating(self, registry: registry, entities: EntityRegistry) -> None:
        metadata = registry.metadata
        names = [getattr(self.configuration, f.name) for f in fields(self.configuration)]
        if all(name in metadata.tables for name in names):
            # Model built before, e.g. by another factory sharing the base
            self._tables = IdentityTables(*(metadata.tables[name] for name in names))
            return
        self._tables = create_identity_tables(metadata, self.configuration)
        logger.debug(
            "Declared identity tables: %s",
            ", ".join(table.name for table in self._tables),
        )


__all__ = [
    "IdentityConfiguration",
    "IdentityTables",
    "IdentityFeatureProcessor",
    "create_identity_tables",
]
