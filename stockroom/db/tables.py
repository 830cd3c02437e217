"""
Table definitions.

Rows travel through the API as plain ``dict`` objects keyed by these
column names, so column names are camelCase to match the JSON payloads.

Every tenant-scoped table carries ``organizationID``. ``kitModel`` and
``itemCustomField`` are association tables scoped through their parent.
"""

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    MetaData,
    Numeric,
    String,
    Table,
    Text,
    UniqueConstraint,
    false,
    func,
)

metadata = MetaData()


organization = Table(
    "organization",
    metadata,
    Column("organizationID", Integer, primary_key=True, autoincrement=True),
    Column("name", String(255), nullable=False, unique=True),
)

role = Table(
    "role",
    metadata,
    Column("roleID", Integer, primary_key=True, autoincrement=False),
    Column("name", String(64), nullable=False, unique=True),
)

user = Table(
    "user",
    metadata,
    Column("userID", Integer, primary_key=True, autoincrement=True),
    Column("firstName", String(255), nullable=False),
    Column("lastName", String(255), nullable=False),
    Column("email", String(255), nullable=False, unique=True),
    Column("password", String(255), nullable=False),
    Column("phone", String(32)),
    Column(
        "organizationID",
        Integer,
        ForeignKey("organization.organizationID", ondelete="CASCADE"),
        nullable=False,
    ),
    Column("roleID", Integer, ForeignKey("role.roleID"), nullable=False, server_default="2"),
    Column("archived", Date),
)

# One row per issued token; only the newest row for a user is honored
refresh_token = Table(
    "refreshToken",
    metadata,
    Column("refreshTokenID", Integer, primary_key=True, autoincrement=True),
    Column("userID", Integer, ForeignKey("user.userID", ondelete="CASCADE"), nullable=False, index=True),
    Column("refreshToken", String(255), nullable=False),
    Column("createdAt", DateTime, nullable=False, server_default=func.current_timestamp()),
)

category = Table(
    "category",
    metadata,
    Column("categoryID", Integer, primary_key=True, autoincrement=True),
    Column(
        "organizationID",
        Integer,
        ForeignKey("organization.organizationID", ondelete="CASCADE"),
        nullable=False,
    ),
    Column("name", String(255), nullable=False),
    UniqueConstraint("organizationID", "name", name="uq_category_organization_name"),
)

brand = Table(
    "brand",
    metadata,
    Column("brandID", Integer, primary_key=True, autoincrement=True),
    Column(
        "organizationID",
        Integer,
        ForeignKey("organization.organizationID", ondelete="CASCADE"),
        nullable=False,
    ),
    Column("name", String(255), nullable=False),
    UniqueConstraint("organizationID", "name", name="uq_brand_organization_name"),
)

model = Table(
    "model",
    metadata,
    Column("modelID", Integer, primary_key=True, autoincrement=True),
    Column(
        "organizationID",
        Integer,
        ForeignKey("organization.organizationID", ondelete="CASCADE"),
        nullable=False,
    ),
    Column("brandID", Integer, ForeignKey("brand.brandID"), nullable=False),
    Column("name", String(255), nullable=False),
    Column("price", Numeric(10, 2)),
    Column("description", Text),
    UniqueConstraint("organizationID", "brandID", "name", name="uq_model_brand_name"),
)

kit = Table(
    "kit",
    metadata,
    Column("kitID", Integer, primary_key=True, autoincrement=True),
    Column(
        "organizationID",
        Integer,
        ForeignKey("organization.organizationID", ondelete="CASCADE"),
        nullable=False,
    ),
    Column("name", String(255), nullable=False),
    UniqueConstraint("organizationID", "name", name="uq_kit_organization_name"),
)

kit_model = Table(
    "kitModel",
    metadata,
    Column("kitID", Integer, ForeignKey("kit.kitID", ondelete="CASCADE"), primary_key=True),
    Column("modelID", Integer, ForeignKey("model.modelID", ondelete="CASCADE"), primary_key=True),
    Column("quantity", Integer, nullable=False, server_default="1"),
)

item = Table(
    "item",
    metadata,
    Column("barcode", String(64), primary_key=True),
    Column(
        "organizationID",
        Integer,
        ForeignKey("organization.organizationID", ondelete="CASCADE"),
        nullable=False,
    ),
    Column("modelID", Integer, ForeignKey("model.modelID"), nullable=False),
    Column("categoryID", Integer, ForeignKey("category.categoryID"), nullable=False),
    Column("serial", String(255)),
    Column("notes", Text),
    Column("archived", Boolean, nullable=False, server_default=false()),
)

custom_field = Table(
    "customField",
    metadata,
    Column("customFieldID", Integer, primary_key=True, autoincrement=True),
    Column(
        "organizationID",
        Integer,
        ForeignKey("organization.organizationID", ondelete="CASCADE"),
        nullable=False,
    ),
    Column("name", String(255), nullable=False),
    UniqueConstraint("organizationID", "name", name="uq_custom_field_organization_name"),
)

item_custom_field = Table(
    "itemCustomField",
    metadata,
    Column("barcode", String(64), ForeignKey("item.barcode", ondelete="CASCADE"), primary_key=True),
    Column(
        "customFieldID",
        Integer,
        ForeignKey("customField.customFieldID", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column("value", Text),
)

rental = Table(
    "rental",
    metadata,
    Column("rentalID", Integer, primary_key=True, autoincrement=True),
    Column(
        "organizationID",
        Integer,
        ForeignKey("organization.organizationID", ondelete="CASCADE"),
        nullable=False,
    ),
    Column("barcode", String(64), ForeignKey("item.barcode", ondelete="CASCADE"), nullable=False, index=True),
    Column("userID", Integer, ForeignKey("user.userID"), nullable=False),
    Column("startDate", DateTime, nullable=False, server_default=func.current_timestamp()),
    Column("dueDate", DateTime),
    # NULL while the item is still out
    Column("returnDate", DateTime),
)

# Seeded by init_db; ids are referenced by the role guard
DEFAULT_ROLES = (
    {"roleID": 1, "name": "Administrator"},
    {"roleID": 2, "name": "Member"},
)
