from datetime import datetime
from sqlalchemy import Column, Integer, String, Float, Boolean, DateTime, ForeignKey, Text, event
from sqlalchemy.orm import relationship
from .database import Base
from . import derived

class User(Base):
    __tablename__ = "users"
    user_id = Column(Integer, primary_key=True, index=True)
    username = Column(String, unique=True, index=True, nullable=False)
    name = Column(String, nullable=False)
    password_hash = Column(String, nullable=False)
    role = Column(String, nullable=False)  # 'Admin', 'Staff'


class Bike(Base):
    __tablename__ = "bikes"
    id = Column(Integer, primary_key=True, index=True)
    bike_number = Column(String, unique=True, index=True, nullable=False)
    brand = Column(String, index=True, nullable=False)
    model = Column(String, nullable=False)
    year = Column(Integer, nullable=False)

    buy_price = Column(Float, nullable=False)
    sell_price = Column(Float, nullable=True)
    profit = Column(Float, nullable=True)
    profit_percent = Column(Float, nullable=True)

    status = Column(String, index=True, default="available")  # 'available', 'sold', 'reserved'

    purchase_date = Column(DateTime, index=True, nullable=False)
    sell_date = Column(DateTime, nullable=True)
    days_to_sell = Column(Integer, nullable=True)

    color = Column(String, nullable=True)
    fuel_type = Column(String, default="Petrol")  # 'Petrol', 'Electric'
    mileage = Column(Integer, nullable=True)
    engine_cc = Column(Integer, nullable=True)
    condition_rating = Column(Integer, default=8)  # 1..10
    notes = Column(Text, nullable=True)

    # Plain id, not a FK: sales.bike_id already points the other way
    sale_id = Column(Integer, nullable=True)

    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)

    sales = relationship("Sale", back_populates="bike")


class Customer(Base):
    __tablename__ = "customers"
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, index=True, nullable=False)
    phone = Column(String, unique=True, index=True, nullable=False)
    email = Column(String, index=True, nullable=True)
    address = Column(String, nullable=False)
    date_of_birth = Column(DateTime, nullable=True)
    occupation = Column(String, nullable=True)

    # Running aggregates, only the sale workflow moves them
    total_spent = Column(Float, nullable=False, default=0.0)
    total_bikes_bought = Column(Integer, nullable=False, default=0)
    last_purchase_date = Column(DateTime, nullable=True)

    customer_type = Column(String, default="Regular")  # 'Regular', 'Premium', 'VIP'
    notes = Column(Text, nullable=True)
    is_active = Column(Boolean, default=True)

    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)

    sales = relationship("Sale", back_populates="customer")


class Sale(Base):
    __tablename__ = "sales"

    id = Column(Integer, primary_key=True, index=True)
    sale_number = Column(String, unique=True, index=True, nullable=False)
    invoice_number = Column(String, unique=True, index=True, nullable=False)

    bike_id = Column(Integer, ForeignKey("bikes.id"), index=True, nullable=False)
    customer_id = Column(Integer, ForeignKey("customers.id"), index=True, nullable=False)

    # Buyer snapshot at sale time
    buyer_name = Column(String, nullable=False)
    buyer_phone = Column(String, nullable=False)
    buyer_address = Column(String, nullable=False)

    selling_price = Column(Float, nullable=False)
    discount = Column(Float, nullable=False, default=0.0)
    final_amount = Column(Float, nullable=False)
    profit = Column(Float, nullable=False)
    profit_percent = Column(Float, nullable=False)

    payment_mode = Column(String, nullable=False)  # 'Cash', 'UPI', 'Card', 'Bank Transfer', 'Cheque'
    payment_status = Column(String, default="Paid")  # 'Paid', 'Pending', 'Partial'

    invoice_path = Column(String, nullable=True)
    notes = Column(Text, nullable=True)
    sold_by = Column(Integer, ForeignKey("users.user_id"), nullable=False)

    created_at = Column(DateTime, index=True, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)

    bike = relationship("Bike", back_populates="sales")
    customer = relationship("Customer", back_populates="sales")
    seller = relationship("User")
    payment = relationship("Payment", back_populates="sale", uselist=False)


class Payment(Base):
    __tablename__ = "payments"

    id = Column(Integer, primary_key=True, index=True)
    sale_id = Column(Integer, ForeignKey("sales.id"), unique=True, index=True, nullable=False)
    bike_id = Column(Integer, ForeignKey("bikes.id"), index=True, nullable=False)
    customer_id = Column(Integer, ForeignKey("customers.id"), index=True, nullable=False)

    total_amount = Column(Float, nullable=False)
    paid_amount = Column(Float, nullable=False, default=0.0)
    remaining_amount = Column(Float, nullable=False, default=0.0)
    status = Column(String, index=True, default="pending")  # 'pending', 'partial', 'completed'

    due_date = Column(DateTime, nullable=True)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)

    sale = relationship("Sale", back_populates="payment")
    bike = relationship("Bike")
    customer = relationship("Customer")
    logs = relationship(
        "PaymentLog",
        back_populates="payment",
        order_by="PaymentLog.id",
    )


class PaymentLog(Base):
    __tablename__ = "payment_logs"

    id = Column(Integer, primary_key=True, index=True)
    payment_id = Column(Integer, ForeignKey("payments.id"), index=True, nullable=False)
    amount = Column(Float, nullable=False)
    payment_date = Column(DateTime, nullable=False, default=datetime.now)
    payment_method = Column(String, nullable=False)
    notes = Column(Text, nullable=True)
    received_by = Column(Integer, ForeignKey("users.user_id"), nullable=False)
    created_at = Column(DateTime, default=datetime.now)

    payment = relationship("Payment", back_populates="logs")


class Finance(Base):
    __tablename__ = "finance"

    id = Column(Integer, primary_key=True, index=True)
    person_name = Column(String, index=True, nullable=False)
    person_type = Column(String, index=True, nullable=False)  # Bank / Private Lender / ...
    contact_number = Column(String, nullable=True)
    email = Column(String, nullable=True)
    address = Column(String, nullable=True)

    # Maintained by each new FinanceTransaction
    total_amount_paid = Column(Float, nullable=False, default=0.0)
    total_transactions = Column(Integer, nullable=False, default=0)
    last_payment_date = Column(DateTime, nullable=True)

    status = Column(String, default="active")  # 'active', 'inactive'
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)

    transactions = relationship("FinanceTransaction", back_populates="finance")


class FinanceTransaction(Base):
    __tablename__ = "finance_transactions"

    id = Column(Integer, primary_key=True, index=True)
    finance_id = Column(Integer, ForeignKey("finance.id"), index=True, nullable=False)
    amount = Column(Float, nullable=False)
    payment_date = Column(DateTime, index=True, nullable=False, default=datetime.now)
    payment_method = Column(String, nullable=False)
    purpose = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    reference_number = Column(String, nullable=True)
    paid_by = Column(Integer, ForeignKey("users.user_id"), nullable=False)
    status = Column(String, default="completed")  # 'completed', 'pending', 'failed'

    created_at = Column(DateTime, default=datetime.now)

    finance = relationship("Finance", back_populates="transactions")


class Expense(Base):
    __tablename__ = "expenses"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String, nullable=False)
    category = Column(String, index=True, nullable=False)
    amount = Column(Float, nullable=False)
    expense_date = Column(DateTime, index=True, nullable=False, default=datetime.now)
    payment_method = Column(String, nullable=False)
    description = Column(Text, nullable=True)

    vendor_name = Column(String, nullable=True)
    vendor_contact = Column(String, nullable=True)
    vendor_address = Column(String, nullable=True)

    is_recurring = Column(Boolean, default=False)
    recurring_period = Column(String, nullable=True)  # 'monthly', 'quarterly', 'yearly'

    added_by = Column(Integer, ForeignKey("users.user_id"), index=True, nullable=False)
    status = Column(String, default="approved")  # 'approved', 'pending', 'rejected'

    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)


class Revenue(Base):
    __tablename__ = "revenue"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String, nullable=False)
    source = Column(String, index=True, nullable=False)
    amount = Column(Float, nullable=False)
    revenue_date = Column(DateTime, index=True, nullable=False, default=datetime.now)
    payment_method = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    customer_name = Column(String, nullable=True)
    customer_contact = Column(String, nullable=True)

    is_from_sale = Column(Boolean, default=False)
    sale_id = Column(Integer, ForeignKey("sales.id"), nullable=True)

    added_by = Column(Integer, ForeignKey("users.user_id"), index=True, nullable=False)
    status = Column(String, default="confirmed")  # 'confirmed', 'pending', 'cancelled'

    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)


# ---------- Derived fields at the persistence boundary ----------

@event.listens_for(Bike, "before_insert")
@event.listens_for(Bike, "before_update")
def _bike_before_save(mapper, connection, target):
    derived.apply_bike_fields(target)


@event.listens_for(Customer, "before_insert")
@event.listens_for(Customer, "before_update")
def _customer_before_save(mapper, connection, target):
    derived.apply_customer_fields(target)


@event.listens_for(Payment, "before_insert")
@event.listens_for(Payment, "before_update")
def _payment_before_save(mapper, connection, target):
    derived.apply_payment_fields(target)
