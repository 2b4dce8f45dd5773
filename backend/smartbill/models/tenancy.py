from __future__ import annotations

from ..extensions import db
from smartbill.time_utils import to_utc_z


class Store(db.Model):
    """
    A tenant (merchant).

    MULTI-TENANT: Every product, customer, invoice and login session belongs to
    exactly one store via store_id; deleting a store removes all of them.

    CREDENTIALS:
    - phone is the login identity (OTP) and is unique across stores
    - api_key authorizes catalog-management calls and is unique across stores
    """
    __tablename__ = "stores"
    __table_args__ = (
        db.UniqueConstraint("phone", name="uq_stores_phone"),
        db.UniqueConstraint("api_key", name="uq_stores_api_key"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    store_name = db.Column(db.String(255), nullable=False)
    owner_name = db.Column(db.String(255), nullable=True)
    type_of_business = db.Column(db.String(128), nullable=True)

    phone = db.Column(db.String(10), nullable=False)
    email = db.Column(db.String(255), nullable=True, index=True)
    address = db.Column(db.Text, nullable=True)
    gst_number = db.Column(db.String(15), nullable=True, index=True)
    pincode = db.Column(db.String(10), nullable=True)
    logo_url = db.Column(db.String(512), nullable=True)

    # Opaque credential (uuid4 string); never rendered by to_dict()
    api_key = db.Column(db.String(64), nullable=False)

    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
    )
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    products = db.relationship("Product", back_populates="store", cascade="all, delete-orphan", lazy=True)
    invoices = db.relationship("Invoice", back_populates="store", cascade="all, delete-orphan", lazy=True)
    customers = db.relationship("Customer", back_populates="store", cascade="all, delete-orphan", lazy=True)
    sessions = db.relationship("StoreSession", back_populates="store", cascade="all, delete-orphan", lazy=True)

    def __repr__(self) -> str:
        return f"<Store id={self.id} store_name={self.store_name!r}>"

    def to_dict(self) -> dict:
        return {
            "storeId": self.id,
            "storeName": self.store_name,
            "ownerName": self.owner_name,
            "typeOfBusiness": self.type_of_business,
            "phone": self.phone,
            "email": self.email,
            "address": self.address,
            "gstNumber": self.gst_number,
            "pincode": self.pincode,
            "logoUrl": self.logo_url,
            "status": "active",
            "createdAt": to_utc_z(self.created_at),
        }
