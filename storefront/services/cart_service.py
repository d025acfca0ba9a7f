"""
Cart service: guest and customer shopping carts and product checkout.

A cart belongs either to a user (``user_id``) or to an anonymous visitor
identified by the ``X-Guest-ID`` header (``guest_id``), never both.
"""
import json
import logging
import uuid
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from storefront.config import settings
from storefront.core.audit import AuditAction, log_authorization_failed, record_audit
from storefront.core.exceptions import NotFoundError, PermissionDeniedError, ValidationFailedError
from storefront.core.metrics import metrics
from storefront.models.database import (
    Cart,
    CartItem,
    Invoice,
    Order,
    OrderItem,
    OrderStatus,
    OrderType,
    Payment,
    PaymentStatus,
    Product,
    ProductVariant,
    User,
    UserRole,
    utcnow,
)
from storefront.models.schemas import CartItemCreate, CartItemUpdate, CheckoutRequest, is_valid_email, normalize_email
from storefront.services.common import money
from storefront.services.order_service import allocate_invoice_number, item_to_dict

logger = logging.getLogger(__name__)


class CartService:
    """Service for cart contents and product checkout."""

    # ---------- cart identity ----------

    def find_cart(self, db: Session, user: Optional[User], guest_id: Optional[str]) -> Optional[Cart]:
        if user is not None:
            return db.query(Cart).filter(Cart.user_id == user.id).first()
        if guest_id:
            return db.query(Cart).filter(Cart.guest_id == guest_id, Cart.user_id.is_(None)).first()
        return None

    def get_or_create_cart(self, db: Session, user: Optional[User], guest_id: Optional[str]) -> Cart:
        """Return the caller's cart, creating one (and a guest id) if needed."""
        cart = self.find_cart(db, user, guest_id)
        if cart is not None:
            return cart

        if user is not None:
            cart = Cart(user_id=user.id, guest_id=None)
        else:
            cart = Cart(user_id=None, guest_id=guest_id or str(uuid.uuid4()))
        db.add(cart)
        db.commit()
        db.refresh(cart)
        logger.info(f"Created cart {cart.id} ({'user' if user else 'guest'})")
        return cart

    def _owned_cart(self, db: Session, user: Optional[User], guest_id: Optional[str], cart_id: str) -> Cart:
        cart = self.find_cart(db, user, guest_id)
        if cart is None or cart.id != cart_id:
            raise NotFoundError("Cart")
        return cart

    # ---------- cart contents ----------

    def _items(self, db: Session, cart: Cart) -> List[Dict[str, Any]]:
        rows = (
            db.query(CartItem, Product.name, Product.slug, Product.thumbnail_url, ProductVariant.label, ProductVariant.quantity)
            .join(Product, CartItem.product_id == Product.id)
            .outerjoin(ProductVariant, CartItem.product_variant_id == ProductVariant.id)
            .filter(CartItem.cart_id == cart.id)
            .order_by(CartItem.created_at)
            .all()
        )
        items = []
        for item, name, slug, thumbnail, variant_label, variant_quantity in rows:
            data = item_to_dict(item)
            data.update(
                product_name=name,
                product_slug=slug,
                thumbnail_url=thumbnail,
                variant_label=variant_label,
                variant_quantity=variant_quantity,
            )
            items.append(data)
        return items

    def get_cart(self, db: Session, user: Optional[User], guest_id: Optional[str]) -> Dict[str, Any]:
        """Cart with items and subtotal; creates the cart on first access."""
        cart = self.get_or_create_cart(db, user, guest_id)
        items = self._items(db, cart)
        return {
            "cart": cart.to_dict(),
            "items": items,
            "subtotal": money(sum(i["total_price"] for i in items)),
            "guest_id": cart.guest_id,
        }

    def _price(self, db: Session, product: Product, variant_id: Optional[str], quantity: int) -> Tuple[Optional[ProductVariant], float, float]:
        """Resolve (variant, unit_price, total_price) for a cart line."""
        if variant_id:
            variant = db.query(ProductVariant).filter(
                ProductVariant.id == variant_id,
                ProductVariant.product_id == product.id,
                ProductVariant.is_active.is_(True),
            ).first()
            if variant is None:
                raise NotFoundError("Product variant")
            return variant, money(variant.unit_price), money(variant.total_price)
        unit = money(product.base_price)
        return None, unit, money(unit * quantity)

    def add_item(self, db: Session, user: Optional[User], guest_id: Optional[str], request: CartItemCreate) -> Dict[str, Any]:
        """
        Add a product line to the caller's cart.

        Variant lines take the pack price; plain lines are base price times
        quantity.

        Raises:
            ValidationFailedError: quantity below 1
            NotFoundError: Unknown or inactive product, or foreign variant
        """
        if request.quantity is None or request.quantity < 1:
            raise ValidationFailedError("quantity must be at least 1", field="quantity")

        product = db.query(Product).filter(Product.id == request.product_id, Product.is_active.is_(True)).first()
        if product is None:
            raise NotFoundError("Product")
        variant, unit_price, total_price = self._price(db, product, request.product_variant_id, request.quantity)

        cart = self.get_or_create_cart(db, user, guest_id)
        item = CartItem(
            cart_id=cart.id,
            product_id=product.id,
            product_variant_id=variant.id if variant else None,
            quantity=request.quantity,
            unit_price=unit_price,
            total_price=total_price,
            config_snapshot=json.dumps(request.config) if request.config is not None else None,
        )
        db.add(item)
        cart.updated_at = utcnow()
        db.commit()
        db.refresh(item)
        logger.info(f"Added {product.slug} x{request.quantity} to cart {cart.id}")
        return {"item": item_to_dict(item), "guest_id": cart.guest_id}

    def _owned_item(self, db: Session, user: Optional[User], guest_id: Optional[str], item_id: str) -> Tuple[CartItem, Cart]:
        cart = self.find_cart(db, user, guest_id)
        item = db.query(CartItem).filter(CartItem.id == item_id).first()
        if cart is None or item is None or item.cart_id != cart.id:
            raise NotFoundError("Cart item")
        return item, cart

    def update_item(self, db: Session, user: Optional[User], guest_id: Optional[str], item_id: str, request: CartItemUpdate) -> Dict[str, Any]:
        item, cart = self._owned_item(db, user, guest_id, item_id)
        changes = request.model_dump(exclude_unset=True)

        if "quantity" in changes:
            if request.quantity is None or request.quantity < 1:
                raise ValidationFailedError("quantity must be at least 1", field="quantity")
            item.quantity = request.quantity

        product = db.query(Product).filter(Product.id == item.product_id).first()
        if product is None:
            raise NotFoundError("Product")
        variant_id = request.product_variant_id if "product_variant_id" in changes else item.product_variant_id
        if "product_variant_id" in changes or "quantity" in changes:
            variant, item.unit_price, item.total_price = self._price(db, product, variant_id, item.quantity)
            item.product_variant_id = variant.id if variant else None

        if "config" in changes:
            item.config_snapshot = json.dumps(request.config) if request.config is not None else None

        cart.updated_at = utcnow()
        db.commit()
        db.refresh(item)
        return item_to_dict(item)

    def remove_item(self, db: Session, user: Optional[User], guest_id: Optional[str], item_id: str) -> None:
        item, cart = self._owned_item(db, user, guest_id, item_id)
        db.delete(item)
        cart.updated_at = utcnow()
        db.commit()

    def merge_guest_cart(self, db: Session, user: User, guest_id: Optional[str]) -> Dict[str, Any]:
        """Move a guest cart's lines into the user's cart after login."""
        if not guest_id:
            raise ValidationFailedError("X-Guest-ID header required")

        guest_cart = self.find_cart(db, None, guest_id)
        moved = 0
        if guest_cart is not None:
            cart = self.get_or_create_cart(db, user, None)
            items = db.query(CartItem).filter(CartItem.cart_id == guest_cart.id).all()
            for item in items:
                item.cart_id = cart.id
            moved = len(items)
            db.flush()
            db.delete(guest_cart)
            cart.updated_at = utcnow()
            db.commit()
            logger.info(f"Merged {moved} guest cart items into cart {cart.id}")

        result = self.get_cart(db, user, None)
        result["merged_items"] = moved
        return result

    # ---------- checkout ----------

    def checkout(
        self,
        db: Session,
        user: Optional[User],
        guest_id: Optional[str],
        request: CheckoutRequest,
        ip_address: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Turn the cart into a paid PRODUCT order.

        Creates the order with tax, its items, a completed payment and a
        paid invoice, then empties the cart.

        Raises:
            ValidationFailedError: Missing guest details or empty cart
            NotFoundError: Cart not owned by the caller
        """
        if user is None:
            if not (request.guest_name or "").strip() or not (request.guest_email or "").strip():
                raise ValidationFailedError("Guest checkout requires guest_name and guest_email")
            if not is_valid_email(normalize_email(request.guest_email)):
                raise ValidationFailedError("Invalid email format", field="guest_email")
            if not (request.shipping_address or "").strip():
                raise ValidationFailedError("Guest checkout requires shipping_address", field="shipping_address")

        cart = self._owned_cart(db, user, guest_id, request.cart_id)
        items = db.query(CartItem).filter(CartItem.cart_id == cart.id).order_by(CartItem.created_at).all()
        if not items:
            raise ValidationFailedError("Cart is empty")

        subtotal = money(sum(i.total_price for i in items))
        tax = money(subtotal * settings.TAX_RATE)
        total = money(subtotal + tax)
        is_guest = user is None

        order = Order(
            quote_id=None,
            customer_id=None if is_guest else user.id,
            tier_id=None,
            order_type=OrderType.PRODUCT,
            status=OrderStatus.PAID,
            total_subtotal=subtotal,
            tax_amount=tax,
            total_amount=total,
            deposit_pct=100,
            deposit_amount=total,
            guest_name=request.guest_name.strip() if is_guest else None,
            guest_email=normalize_email(request.guest_email) if is_guest else None,
            guest_phone=request.guest_phone if is_guest else None,
            guest_address=request.shipping_address if is_guest else None,
        )
        db.add(order)
        db.flush()

        names = dict(db.query(Product.id, Product.name).filter(Product.id.in_({i.product_id for i in items})).all())
        for item in items:
            db.add(OrderItem(
                order_id=order.id,
                product_id=item.product_id,
                product_variant_id=item.product_variant_id,
                description=names.get(item.product_id, "Product"),
                quantity=item.quantity,
                unit_price=item.unit_price,
                total_price=item.total_price,
                config_snapshot=item.config_snapshot,
            ))
            db.delete(item)

        db.add(Payment(
            order_id=order.id,
            amount=total,
            method=request.payment_method,
            status=PaymentStatus.COMPLETED,
            transaction_ref=f"pi_product_{order.id}",
        ))

        now = utcnow()
        invoice = Invoice(
            order_id=order.id,
            invoice_number=allocate_invoice_number(db, "INV-PROD", now.year),
            amount_due=total,
            issued_at=now,
            paid_at=now,
        )
        db.add(invoice)
        cart.updated_at = now

        if user is not None:
            record_audit(db, user.id, AuditAction.CHECKOUT, "order", order.id, metadata={"total_amount": total}, ip_address=ip_address)
        db.commit()
        db.refresh(invoice)

        metrics.increment("checkouts_completed")
        metrics.increment("orders_created")
        logger.info(f"Product checkout {order.id}: {len(items)} items, total={total} (guest={is_guest})")
        return {
            "order_id": order.id,
            "invoice_number": invoice.invoice_number,
            "total_amount": total,
            "status": OrderStatus.PAID.value,
            "customer_id": order.customer_id,
            "items_count": len(items),
            "is_guest": is_guest,
        }

    def get_product_order(
        self,
        db: Session,
        order_id: str,
        user: Optional[User] = None,
        guest_email: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Product order detail for its owner.

        Signed-in owners (and staff) see their orders; guests prove ownership
        with the checkout email.
        """
        order = db.query(Order).filter(Order.id == order_id, Order.order_type == OrderType.PRODUCT).first()
        if order is None:
            raise NotFoundError("Order")

        if user is not None and (user.role != UserRole.CUSTOMER or order.customer_id == user.id):
            allowed = True
        else:
            allowed = (
                order.customer_id is None
                and guest_email is not None
                and normalize_email(guest_email) == order.guest_email
            )
        if not allowed:
            log_authorization_failed(user.id if user else "guest", "order", order_id)
            raise PermissionDeniedError("Access denied")

        rows = (
            db.query(OrderItem, Product.name, Product.slug, Product.thumbnail_url)
            .outerjoin(Product, OrderItem.product_id == Product.id)
            .filter(OrderItem.order_id == order.id)
            .order_by(OrderItem.created_at)
            .all()
        )
        items = []
        for item, name, slug, thumbnail in rows:
            data = item_to_dict(item)
            data.update(product_name=name, product_slug=slug, thumbnail_url=thumbnail)
            items.append(data)

        invoice = db.query(Invoice).filter(Invoice.order_id == order.id).first()
        payments = db.query(Payment).filter(Payment.order_id == order.id).order_by(Payment.created_at).all()
        return {
            "order": order.to_dict(),
            "items": items,
            "invoice": invoice.to_dict() if invoice else None,
            "payments": [p.to_dict() for p in payments],
        }

    def create_product_intent(self, db: Session, user: Optional[User], guest_id: Optional[str], cart_id: str, amount: float) -> Dict[str, str]:
        """Mock card payment intent for a cart."""
        cart = self._owned_cart(db, user, guest_id, cart_id)
        intent_id = f"pi_product_{uuid.uuid4().hex[:24]}"
        logger.info(f"Created mock product intent {intent_id} for cart {cart.id} amount={money(amount)}")
        return {"client_secret": f"{intent_id}_secret_{uuid.uuid4().hex[:16]}", "payment_intent_id": intent_id}


# Singleton instance
cart_service = CartService()
