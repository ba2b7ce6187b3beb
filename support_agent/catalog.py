# support_agent/catalog.py
from __future__ import annotations

import logging
from typing import Optional, Literal

from pydantic import BaseModel

logger = logging.getLogger(__name__)

QueryType = Literal["price", "dimensions", "general"]


class Product(BaseModel):
    product_id: str
    name: str
    price: str
    dimensions: str
    description: str
    in_stock: bool


PRODUCTS: dict[str, Product] = {
    p.name.lower(): p
    for p in [
        Product(product_id="P001", name="Wireless Headphones", price="$89.99",
                dimensions="7.5 x 6.8 x 1.8 inches",
                description="High-quality wireless headphones with noise cancellation and 30-hour battery life.",
                in_stock=True),
        Product(product_id="P002", name="Bluetooth Speaker", price="$49.99",
                dimensions="3.1 x 3.1 x 3.1 inches",
                description="Portable Bluetooth speaker with waterproof design and 12-hour playtime.",
                in_stock=True),
        Product(product_id="P003", name="Smart Watch", price="$199.99",
                dimensions="1.8 x 1.8 x 0.5 inches",
                description="Fitness tracking smartwatch with heart rate monitoring and GPS.",
                in_stock=True),
        Product(product_id="P004", name="Laptop Stand", price="$29.99",
                dimensions="12 x 9 x 4 inches",
                description="Adjustable laptop stand for better ergonomics and cooling.",
                in_stock=False),
        Product(product_id="P005", name="USB Cable", price="$12.99",
                dimensions="6 x 0.5 x 0.5 inches",
                description="High-speed USB charging cable, 6 feet long.",
                in_stock=True),
        Product(product_id="P006", name="Phone Case", price="$24.99",
                dimensions="6 x 3 x 0.5 inches",
                description="Protective phone case with screen protector included.",
                in_stock=True),
        Product(product_id="P007", name="Wireless Mouse", price="$39.99",
                dimensions="4 x 2.5 x 1.5 inches",
                description="Ergonomic wireless mouse with long battery life.",
                in_stock=True),
        Product(product_id="P008", name="Keyboard", price="$79.99",
                dimensions="18 x 6 x 1.5 inches",
                description="Mechanical keyboard with RGB lighting.",
                in_stock=True),
    ]
}

KNOWLEDGE_BASE: dict[str, str] = {
    "returns policy": (
        "Our returns policy allows you to return items within 30 days of purchase. "
        "Items must be in original condition with all packaging and accessories."
    ),
    "shipping policy": (
        "We offer free shipping on orders over $50. Standard shipping takes 3-5 business days, "
        "and express shipping is available for an additional fee."
    ),
    "warranty": (
        "All our products come with a 1-year manufacturer warranty. "
        "Extended warranty options are available for purchase."
    ),
    "customer support": (
        "Our customer support team is available Monday through Friday, 9 AM to 6 PM EST. "
        "You can reach us at support@example.com or by phone at 1-800-123-4567."
    ),
    "payment methods": (
        "We accept all major credit cards, PayPal, Apple Pay, and Google Pay. "
        "All payments are processed securely."
    ),
    "privacy policy": (
        "We take your privacy seriously. Your personal information is never sold to third parties "
        "and is used only to process your orders and improve our services."
    ),
    "cancellation policy": (
        "Orders can be cancelled if they are still in processing status. "
        "Processing typically takes 24-48 hours from placement."
    ),
    "refunds": "For refund-related inquiries, please contact our customer support team directly.",
    "default": (
        "I apologize, but I couldn't find specific information about that topic in our knowledge base. "
        "Please contact our customer support team for assistance."
    ),
}

# First matching keyword wins, so "return" is checked before "refund".
_TOPIC_KEYWORDS: list[tuple[tuple[str, ...], str]] = [
    (("return",), "returns policy"),
    (("ship", "delivery"), "shipping policy"),
    (("warranty", "guarantee"), "warranty"),
    (("support", "help", "contact"), "customer support"),
    (("payment", "pay"), "payment methods"),
    (("privacy", "data"), "privacy policy"),
    (("cancel",), "cancellation policy"),
    (("refund",), "refunds"),
]


def find_product(name: str) -> Optional[Product]:
    q_raw = " ".join(name.lower().replace("-", " ").split())
    if not q_raw:
        return None
    if q_raw in PRODUCTS:
        return PRODUCTS[q_raw]

    # Fallback: crude plural normalization, then every word must appear
    words = []
    for w in q_raw.split():
        if len(w) > 3 and w.endswith("s"):
            w = w[:-1]
        words.append(w)
    for key, product in PRODUCTS.items():
        if all(w in key for w in words):
            return product
    return None


def product_information(product_name: str, query_type: QueryType = "general", question: Optional[str] = None) -> str:
    product = find_product(product_name or "")
    if product is None:
        return f'Product "{product_name}" not found in our catalog.'

    if query_type == "price":
        return f"The {product.name} costs {product.price}."
    if query_type == "dimensions":
        return f"The {product.name} dimensions are {product.dimensions}."
    if query_type == "general":
        stock = "in stock" if product.in_stock else "currently out of stock"
        return f"{product.description} It is {stock}."
    return (
        f"Product information for {product.name}: {product.description} "
        f"Price: {product.price}, Dimensions: {product.dimensions}."
    )


def general_question(question: str) -> str:
    q = (question or "").lower().strip()
    for keywords, topic in _TOPIC_KEYWORDS:
        if any(k in q for k in keywords):
            logger.debug("[catalog] %r matched topic %s", question, topic)
            return KNOWLEDGE_BASE[topic]
    return KNOWLEDGE_BASE["default"]
