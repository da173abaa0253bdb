# Overview: Service-layer operations for the product catalog and warehouses.

from __future__ import annotations

from ..errors import NotFoundError, ValidationError
from ..extensions import db
from ..models import Product, ProductCategory, Warehouse


def get_product(product_id: int) -> Product:
    product = db.session.get(Product, product_id)
    if product is None:
        raise NotFoundError("product", product_id)
    return product


def get_warehouse(warehouse_id: int) -> Warehouse:
    warehouse = db.session.get(Warehouse, warehouse_id)
    if warehouse is None:
        raise NotFoundError("warehouse", warehouse_id)
    return warehouse


def create_warehouse(name: str, address: str) -> Warehouse:
    name = (name or "").strip()
    if not name:
        raise ValidationError("Warehouse name is required", details={"field": "name"})
    if db.session.query(Warehouse).filter_by(name=name).first():
        raise ValidationError(f"Warehouse {name} already exists", details={"field": "name"})

    warehouse = Warehouse(name=name, address=(address or "").strip())
    db.session.add(warehouse)
    db.session.commit()
    return warehouse


def create_product(
    name: str,
    unit: str,
    description: str | None = None,
    category_name: str | None = None,
) -> Product:
    name = (name or "").strip()
    unit = (unit or "").strip()
    if not name:
        raise ValidationError("Product name is required", details={"field": "name"})
    if not unit:
        raise ValidationError("Product unit is required", details={"field": "unit"})

    category = None
    if category_name:
        category = db.session.query(ProductCategory).filter_by(name=category_name).first()
        if category is None:
            category = ProductCategory(name=category_name)
            db.session.add(category)

    product = Product(name=name, unit=unit, description=description, category=category, is_active=True)
    db.session.add(product)
    db.session.commit()
    return product


def list_products() -> list[Product]:
    return db.session.query(Product).order_by(Product.id.asc()).all()


def list_warehouses() -> list[Warehouse]:
    return db.session.query(Warehouse).order_by(Warehouse.id.asc()).all()
