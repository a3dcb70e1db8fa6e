"""
Development seed: ``python -m buildsetu.seed``

Wipes the marketplace tables and loads sample users, categories, products,
an address and one order placed through the order ledger. Prints bearer
tokens for the three sample accounts.
"""

from decimal import Decimal

from buildsetu.database import SessionLocal, init_database, transaction
from buildsetu.models import (
    Address,
    Category,
    Order,
    OrderItem,
    Product,
    Role,
    SupportMessage,
    SupportTicket,
    User,
)
from buildsetu.policy import Actor
from buildsetu.pricing import LineRequest
from buildsetu.security import create_token
from buildsetu.services import addresses as address_book
from buildsetu.services import orders as ledger

CATEGORIES = [
    ("Cement", "cement", "Portland cement and cement products"),
    ("Steel", "steel", "Steel bars, rods, and structural steel"),
    ("Sand & Aggregates", "sand-aggregates", "Sand, gravel, and aggregate materials"),
    ("Bricks & Blocks", "bricks-blocks", "Bricks, blocks, and masonry materials"),
]

# (name, slug, description, price, unit, category index, stock)
PRODUCTS = [
    ("Portland Cement 50kg", "portland-cement-50kg",
     "High-quality Portland cement suitable for construction", "500.00", "bag", 0, 500),
    ("Steel TMT Bar 16mm", "steel-tmt-bar-16mm",
     "Thermo-mechanically treated steel bars", "650.00", "piece", 1, 200),
    ("River Sand", "river-sand",
     "High-quality river sand for construction", "100.00", "ton", 2, 1000),
    ("Red Bricks", "red-bricks",
     "Standard red bricks for walls", "0.50", "piece", 3, 5000),
]


def _wipe(db):
    # Children first
    for model in (SupportMessage, SupportTicket, OrderItem, Order, Address, Product, Category, User):
        db.query(model).delete(synchronize_session=False)


def seed():
    init_database()
    db = SessionLocal()
    try:
        with transaction(db):
            _wipe(db)

            buyer = User(name="Test Buyer", email="buyer@example.com", phone="9876543210", role=Role.buyer)
            seller = User(name="Test Seller", email="seller@example.com", phone="9876543211", role=Role.seller)
            admin = User(name="Test Admin", email="admin@example.com", phone="9876543212", role=Role.admin)
            db.add_all([buyer, seller, admin])
            db.flush()

            categories = [Category(name=n, slug=s, description=d) for n, s, d in CATEGORIES]
            db.add_all(categories)
            db.flush()

            products = [
                Product(
                    name=name,
                    slug=slug,
                    description=description,
                    price=Decimal(price),
                    unit=unit,
                    category_id=categories[cat].id,
                    seller_id=seller.id,
                    stock_quantity=stock,
                )
                for name, slug, description, price, unit, cat, stock in PRODUCTS
            ]
            db.add_all(products)

        print("✅ Created 3 users, 4 categories, 4 products")

        buyer_actor = Actor.from_user(buyer)
        address = address_book.create_address(db, buyer_actor, {
            "label": "Home",
            "line1": "123 Main Street",
            "city": "Gwalior",
            "state": "MP",
            "pincode": "474001",
            "is_default": True,
        })
        print("✅ Created sample address")

        order = ledger.create_order(
            db,
            buyer_actor,
            address.id,
            [LineRequest(product_id=products[0].id, quantity=2)],
        )
        print(f"✅ Created sample order {order.id} (total {order.total})")

        print("\n🎉 Database seed completed successfully!\n")
        for user in (buyer, seller, admin):
            print(f"  {user.role.value:<6} {user.email}")
            print(f"         Bearer {create_token(user.id, user.role.value, user.email)}")
    finally:
        db.close()


if __name__ == "__main__":
    seed()
