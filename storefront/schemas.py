# storefront/schemas.py
from datetime import datetime
from typing import Optional, List, Literal

from pydantic import BaseModel, EmailStr, Field

OrderStatus = Literal["pending", "processing", "shipped", "delivered", "cancelled"]


# 🏠 Адрес
class Address(BaseModel):
    street: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None
    country: Optional[str] = None


class ShippingAddress(BaseModel):
    full_name: str
    street: str
    city: str
    state: str
    zip_code: str
    country: str
    phone: str


# 👤 Пользователь
class UserBase(BaseModel):
    name: str = Field(min_length=1)
    email: EmailStr


class UserCreate(UserBase):
    password: str = Field(min_length=6)


class UserLogin(BaseModel):
    email: EmailStr
    password: str


class UserOut(UserBase):
    id: int
    role: str
    phone: Optional[str] = None
    address: Optional[Address] = None
    created_at: datetime

    class Config:
        from_attributes = True


class AuthOut(UserOut):
    token: str


class UserBrief(BaseModel):
    id: int
    name: str
    email: str

    class Config:
        from_attributes = True


class ProfileUpdate(BaseModel):
    name: Optional[str] = None
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    address: Optional[Address] = None
    password: Optional[str] = Field(default=None, min_length=6)


class UsersPage(BaseModel):
    users: List[UserOut]
    page: int
    pages: int
    total: int


# 🗂️ Категория
class CategoryCreate(BaseModel):
    name: str
    slug: str
    description: Optional[str] = None
    image: Optional[str] = None
    is_active: bool = True


class CategoryUpdate(BaseModel):
    name: Optional[str] = None
    slug: Optional[str] = None
    description: Optional[str] = None
    image: Optional[str] = None
    is_active: Optional[bool] = None


class CategoryOut(CategoryCreate):
    id: int

    class Config:
        from_attributes = True


class CategoryBrief(BaseModel):
    id: int
    name: str
    slug: str

    class Config:
        from_attributes = True


# 🛍️ Товар
class ProductBase(BaseModel):
    name: str
    slug: str
    description: str = ""
    price: float = Field(ge=0)
    compare_price: Optional[float] = Field(default=None, ge=0)
    images: List[str] = []
    sizes: List[str] = []
    colors: List[str] = []
    stock: int = Field(default=0, ge=0)
    featured: bool = False
    is_active: bool = True


class ProductCreate(ProductBase):
    category_id: int


class ProductUpdate(BaseModel):
    name: Optional[str] = None
    slug: Optional[str] = None
    description: Optional[str] = None
    price: Optional[float] = Field(default=None, ge=0)
    compare_price: Optional[float] = Field(default=None, ge=0)
    images: Optional[List[str]] = None
    category_id: Optional[int] = None
    sizes: Optional[List[str]] = None
    colors: Optional[List[str]] = None
    stock: Optional[int] = Field(default=None, ge=0)
    featured: Optional[bool] = None
    is_active: Optional[bool] = None


class ProductOut(ProductBase):
    id: int
    category_id: int
    category: Optional[CategoryBrief] = None
    rating: float
    num_reviews: int
    created_at: datetime

    class Config:
        from_attributes = True


class ProductsPage(BaseModel):
    products: List[ProductOut]
    page: int
    pages: int
    total: int


# 🛒 Корзина
class CartProductOut(BaseModel):
    id: int
    name: str
    slug: str
    images: List[str]
    price: float
    stock: int

    class Config:
        from_attributes = True


class CartItemOut(BaseModel):
    id: int
    product_id: int
    product: Optional[CartProductOut] = None
    quantity: int
    size: Optional[str] = None
    color: Optional[str] = None
    price: float

    class Config:
        from_attributes = True


class CartOut(BaseModel):
    id: int
    user_id: int
    items: List[CartItemOut]
    total_price: float

    class Config:
        from_attributes = True


class CartAddRequest(BaseModel):
    product_id: int
    quantity: int = Field(default=1, ge=1)
    size: Optional[str] = None
    color: Optional[str] = None


class CartItemUpdate(BaseModel):
    quantity: int


# 📦 Заказ
class OrderCreate(BaseModel):
    shipping_address: ShippingAddress
    payment_method: str = "stripe"


class OrderItemOut(BaseModel):
    id: int
    product_id: Optional[int] = None
    name: str
    image: str
    quantity: int
    size: Optional[str] = None
    color: Optional[str] = None
    price: float

    class Config:
        from_attributes = True


class PaymentResult(BaseModel):
    id: Optional[str] = None
    status: Optional[str] = None
    update_time: Optional[str] = None
    email: Optional[str] = None


class OrderOut(BaseModel):
    id: int
    user_id: int
    items: List[OrderItemOut]
    shipping_address: ShippingAddress
    payment_method: str
    payment_result: Optional[PaymentResult] = None
    subtotal: float
    shipping_price: float
    tax_price: float
    total_price: float
    status: OrderStatus
    is_paid: bool
    paid_at: Optional[datetime] = None
    is_delivered: bool
    delivered_at: Optional[datetime] = None
    stripe_session_id: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class OrderDetailOut(OrderOut):
    user: Optional[UserBrief] = None


class OrdersPage(BaseModel):
    orders: List[OrderDetailOut]
    page: int
    pages: int
    total: int


class OrderStatusUpdate(BaseModel):
    status: OrderStatus


class CheckoutSessionRequest(BaseModel):
    order_id: int


class CheckoutSessionOut(BaseModel):
    session_id: str
    url: str


class DashboardStats(BaseModel):
    total_orders: int
    total_revenue: float
    total_products: int
    pending_orders: int
    recent_orders: List[OrderDetailOut]
