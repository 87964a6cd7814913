"""Seed the hotel database with staff accounts, rooms and the room-service menu.

Everything already in the database is removed first.

Usage:
    cd backend
    python scripts/seed.py          # wipe and import
    python scripts/seed.py -d       # wipe only
"""

import os
import sys
from decimal import Decimal

# Ensure the backend package is importable when run from a checkout
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy import delete

from hotel_api.core.rbac import StaffRole
from hotel_api.core.security import get_password_hash
from hotel_api.db.session import SessionLocal, init_db
from hotel_api.models import (
    Feedback,
    FoodOrder,
    Guest,
    MenuItem,
    Notification,
    Room,
    RoomStatus,
    RoomType,
    ServiceRequest,
    Staff,
)

DEFAULT_PASSWORD = "password123"

STAFF = [
    ("Admin User", "admin@smana.com", StaffRole.ADMIN),
    ("Receptionist User", "reception@smana.com", StaffRole.RECEPTIONIST),
    ("Chef Gordon", "chef@smana.com", StaffRole.CHEF),
    ("Housekeeper Anna", "housekeeping@smana.com", StaffRole.HOUSEKEEPING),
    ("Manager John", "manager@smana.com", StaffRole.MANAGER),
]

FLOORS = 5
ROOMS_PER_FLOOR = 20

MENU = [
    ("Wagyu Beef Carpaccio", "Thinly sliced A5 Wagyu beef with truffle oil.", 120, "Appetizer"),
    ("Lobster Bisque", "Rich and creamy soup with fresh lobster chunks.", 95, "Appetizer"),
    ("Foie Gras Terrine", "Served with fig jam and brioche toast.", 110, "Appetizer"),
    ("Saffron Risotto", "Creamy arborio rice with Iranian saffron.", 85, "Appetizer"),
    ("Oysters Rockefeller", "Fresh oysters baked with spinach and herbs.", 100, "Appetizer"),
    ("Truffle Mushroom Bruschetta", "Toasted baguette topped with truffle mushrooms.", 75, "Appetizer"),
    ("Scallop Ceviche", "Cured scallops with citrus and chili.", 90, "Appetizer"),
    ("Grilled Ribeye Steak", "Premium ribeye served with roasted vegetables.", 250, "Main Course"),
    ("Pan-Seared Sea Bass", "Wild-caught sea bass with lemon butter sauce.", 220, "Main Course"),
    ("Duck Confit", "Slow-cooked duck leg with potato gratin.", 180, "Main Course"),
    ("Lamb Chops", "Herb-crusted lamb chops with mint chimichurri.", 240, "Main Course"),
    ("Lobster Thermidor", "Whole lobster gratinated with mustard sauce.", 320, "Main Course"),
    ("Black Truffle Pasta", "Homemade tagliatelle with fresh black truffles.", 190, "Main Course"),
    ("Filet Mignon", "Tender beef filet with red wine reduction.", 280, "Main Course"),
    ("King Prawn Curry", "Spicy coconut curry with giant tiger prawns.", 210, "Main Course"),
    ("Gold Leaf Chocolate Cake", "Decadent dark chocolate cake with 24k gold leaf.", 80, "Dessert"),
    ("Tiramisu Classico", "Traditional Italian recipe with mascarpone.", 65, "Dessert"),
    ("Vanilla Bean Panna Cotta", "Silky panna cotta with berry compote.", 60, "Dessert"),
    ("Raspberry Macarons", "Delicate almond cookies filled with raspberry.", 55, "Dessert"),
    ("Lemon Basil Tart", "Zesty lemon curd in a butter crust.", 50, "Dessert"),
    ("Pistachio Gelato", "Homemade gelato with Sicilian pistachios.", 45, "Dessert"),
    ("Signature Gold Latte", "Espresso with steamed milk and gold dust.", 40, "Beverage"),
    ("Royal Saffron Tea", "Premium black tea infused with saffron.", 35, "Beverage"),
    ("Fresh Berry Smoothie", "Blend of strawberries, blueberries, and yogurt.", 45, "Beverage"),
    ("Sparkling Elderflower", "Refreshing elderflower soda with mint.", 30, "Beverage"),
    ("Classic Mojito (Virgin)", "Mint, lime, and soda water.", 35, "Beverage"),
    ("Blue Lagoon Mocktail", "Citrusy blue curacao syrup with soda.", 38, "Beverage"),
]


def _allergens(index: int) -> list:
    if index % 3 == 0:
        return ["Dairy"]
    if index % 5 == 0:
        return ["Shellfish"]
    return []


def destroy(db):
    # Children first so foreign keys never dangle
    for model in (Notification, Feedback, ServiceRequest, FoodOrder, Room, MenuItem, Staff, Guest):
        db.execute(delete(model))
    db.commit()
    print("Existing data removed.")


def seed(db):
    password_hash = get_password_hash(DEFAULT_PASSWORD)
    db.add_all(
        Staff(name=name, email=email, password_hash=password_hash, role=role)
        for name, email, role in STAFF
    )
    print(f"Staff imported: {len(STAFF)} accounts (password: {DEFAULT_PASSWORD})")

    room_types = list(RoomType)
    db.add_all(
        Room(
            room_number=str(floor * 100 + r),
            type=room_types[(floor + r) % len(room_types)],
            floor=floor,
            status=RoomStatus.AVAILABLE,
        )
        for floor in range(1, FLOORS + 1)
        for r in range(1, ROOMS_PER_FLOOR + 1)
    )
    print(f"Rooms imported: {FLOORS * ROOMS_PER_FLOOR}")

    db.add_all(
        MenuItem(
            name=name,
            description=description,
            price=Decimal(price),
            category=category,
            is_active=True,
            allergens=_allergens(index),
        )
        for index, (name, description, price, category) in enumerate(MENU)
    )
    print(f"Menu items imported: {len(MENU)}")
    db.commit()


def main(argv):
    init_db()
    db = SessionLocal()
    try:
        destroy(db)
        if "-d" not in argv:
            seed(db)
            print("Data imported!")
    except Exception as e:
        db.rollback()
        print(f"Error seeding data: {e}")
        raise
    finally:
        db.close()


if __name__ == "__main__":
    main(sys.argv[1:])
