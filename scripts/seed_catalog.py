from __future__ import annotations

from database import SessionLocal
from models import Product, User
from storefront import create_app
from storefront.services.catalog_service import CatalogService


DEMO_MERCHANT = {
    "name": "潮流数码",
    "email": "merchant@example.com",
    "role": "merchant",
    "shop_name": "潮流数码旗舰店",
}

DEMO_PRODUCTS = [
    {
        "name": "高性能笔记本电脑",
        "description": "搭载最新处理器，超长续航，适合办公和游戏。",
        "price": 5999,
        "category": "Electronics",
        "productCode": "LAPTOP-001",
        "stock": 50,
        "salesCount": 120,
        "searchKeywords": "电脑,笔记本,电脑办公,游戏本,电脑配件,电子产品,办公设备",
    },
    {
        "name": "无线降噪耳机",
        "description": "沉浸式音质体验，主动降噪，舒适佩戴。",
        "price": 1299,
        "category": "Electronics",
        "productCode": "HEADPHONE-001",
        "stock": 100,
        "salesCount": 450,
        "searchKeywords": "耳机,降噪耳机,无线耳机,蓝牙耳机,音乐,数码配件,音频设备",
    },
    {
        "name": "机械键盘",
        "description": "青轴手感，RGB背光，电竞专用。",
        "price": 499,
        "category": "Electronics",
        "productCode": "KEYBOARD-001",
        "stock": 80,
        "salesCount": 300,
        "searchKeywords": "键盘,机械键盘,游戏键盘,电脑配件,外设,RGB背光",
    },
    {
        "name": "纯棉T恤",
        "description": "100%纯棉，透气舒适，多色可选。",
        "price": 99,
        "category": "Clothing",
        "productCode": "TSHIRT-001",
        "stock": 200,
        "salesCount": 800,
        "searchKeywords": "T恤,纯棉T恤,衣服,服装,上衣,休闲装",
    },
    {
        "name": "牛仔夹克",
        "description": "经典复古款式，耐磨面料。",
        "price": 399,
        "category": "Clothing",
        "productCode": "JACKET-001",
        "stock": 0,
        "salesCount": 60,
        "searchKeywords": "夹克,牛仔夹克,外套,服装,春秋装",
    },
    {
        "name": "北欧风陶瓷花瓶",
        "description": "简约北欧设计，适合客厅和卧室摆放。",
        "price": 159,
        "category": "Home",
        "productCode": "VASE-001",
        "stock": 35,
        "salesCount": 90,
        "searchKeywords": "花瓶,花器,北欧风,家居装饰,陶瓷花瓶",
    },
    {
        "name": "护眼台灯",
        "description": "无频闪LED光源，三档调光。",
        "price": 199,
        "category": "Home",
        "productCode": "LAMP-001",
        "stock": 60,
        "salesCount": 210,
        "searchKeywords": "台灯,灯具,照明,护眼台灯,阅读台灯,LED灯",
    },
]


def seed_demo_catalog(session, app) -> int:
    if session.query(Product).count():
        return 0
    merchant = session.query(User).filter_by(email=DEMO_MERCHANT["email"]).first()
    if merchant is None:
        merchant = User(**DEMO_MERCHANT)
        session.add(merchant)
        session.commit()
    catalog = CatalogService(session, app)
    for payload in DEMO_PRODUCTS:
        catalog.create_product({**payload, "merchantId": merchant.id})
    return len(DEMO_PRODUCTS)


def main() -> int:
    app = create_app()
    with app.app_context():
        session = SessionLocal()
        try:
            created = seed_demo_catalog(session, app)
        finally:
            SessionLocal.remove()
    if created:
        print(f"Seeded {created} demo products.")
    else:
        print("Catalog already has products; nothing seeded.")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
