from fooddash import db
from fooddash.utils import now_utc, isoformat
from werkzeug.security import generate_password_hash, check_password_hash

USER_ROLES = ('user', 'admin', 'restaurant_owner', 'driver')
ORDER_STATUSES = ('pending', 'accepted', 'preparing', 'on_the_way', 'delivered', 'cancelled')


class TimestampMixin:
    created_at = db.Column(db.DateTime, default=now_utc, nullable=False)
    updated_at = db.Column(db.DateTime, default=now_utc, onupdate=now_utc, nullable=False)


class User(TimestampMixin, db.Model):
    __tablename__ = 'users'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255))
    identifier = db.Column(db.String(255), unique=True, nullable=False)
    password = db.Column(db.String(255), nullable=False)
    role = db.Column(db.Enum(*USER_ROLES, name='user_role'), nullable=False, default='user')

    # Relationships
    restaurant = db.relationship('Restaurant', back_populates='owner', uselist=False,
                                 cascade='all, delete')
    driver = db.relationship('Driver', back_populates='user', uselist=False,
                             cascade='all, delete')
    orders = db.relationship('Order', back_populates='customer', lazy=True,
                             cascade='all, delete')

    def set_password(self, password):
        self.password = generate_password_hash(password)

    def check_password(self, password):
        return check_password_hash(self.password, password)

    @property
    def is_admin(self):
        return self.role == 'admin'

    def summary(self):
        return {
            'id': self.id,
            'name': self.name,
            'identifier': self.identifier
        }

    def to_dict(self):
        # The password hash is never serialized
        return {
            'id': self.id,
            'name': self.name,
            'identifier': self.identifier,
            'role': self.role,
            'created_at': isoformat(self.created_at),
            'updated_at': isoformat(self.updated_at)
        }


class Restaurant(TimestampMixin, db.Model):
    __tablename__ = 'restaurants'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    image = db.Column(db.String(500))
    location = db.Column(db.String(255), nullable=False)
    address = db.Column(db.Text, nullable=False)
    phone = db.Column(db.String(30), nullable=False)
    email = db.Column(db.String(255), unique=True, nullable=False)
    description = db.Column(db.Text)
    cuisine_type = db.Column(db.String(100))
    opening_hours = db.Column(db.String(255))
    start_time = db.Column(db.String(20))
    end_time = db.Column(db.String(20))
    delivery_time = db.Column(db.String(50))
    delivery_fee = db.Column(db.Numeric(10, 2, asdecimal=False), nullable=False, default=0.0)
    minimum_order = db.Column(db.Numeric(10, 2, asdecimal=False), nullable=False, default=0.0)
    rating = db.Column(db.Float, nullable=False, default=0.0)  # derived from reviews
    total_reviews = db.Column(db.Integer, nullable=False, default=0)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    is_verified = db.Column(db.Boolean, nullable=False, default=False)
    # One restaurant per owner, enforced by the database
    user_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'),
                        unique=True, nullable=False)

    # Relationships
    owner = db.relationship('User', back_populates='restaurant')
    menu_items = db.relationship('MenuItem', back_populates='restaurant', lazy=True,
                                 cascade='all, delete')
    orders = db.relationship('Order', back_populates='restaurant', lazy=True,
                             cascade='all, delete')

    def summary(self):
        return {
            'id': self.id,
            'name': self.name,
            'address': self.address,
            'phone': self.phone
        }

    def to_dict(self, include_owner=False):
        data = {
            'id': self.id,
            'name': self.name,
            'image': self.image,
            'location': self.location,
            'address': self.address,
            'phone': self.phone,
            'email': self.email,
            'description': self.description,
            'cuisine_type': self.cuisine_type,
            'opening_hours': self.opening_hours,
            'start_time': self.start_time,
            'end_time': self.end_time,
            'delivery_time': self.delivery_time,
            'delivery_fee': self.delivery_fee,
            'minimum_order': self.minimum_order,
            'rating': self.rating,
            'total_reviews': self.total_reviews,
            'is_active': self.is_active,
            'is_verified': self.is_verified,
            'user_id': self.user_id,
            'created_at': isoformat(self.created_at),
            'updated_at': isoformat(self.updated_at)
        }
        if include_owner:
            data['owner'] = self.owner.summary() if self.owner else None
        return data


class MenuItem(TimestampMixin, db.Model):
    __tablename__ = 'menus'
    __table_args__ = (
        db.CheckConstraint('price > 0', name='ck_menus_price_positive'),
    )

    id = db.Column(db.Integer, primary_key=True)
    restaurant_id = db.Column(db.Integer, db.ForeignKey('restaurants.id', ondelete='CASCADE'),
                              nullable=False, index=True)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text)
    price = db.Column(db.Numeric(10, 2, asdecimal=False), nullable=False)
    category = db.Column(db.String(100))
    image = db.Column(db.String(500))
    is_available = db.Column(db.Boolean, nullable=False, default=True)
    is_vegetarian = db.Column(db.Boolean, nullable=False, default=False)
    is_vegan = db.Column(db.Boolean, nullable=False, default=False)
    spice_level = db.Column(db.Integer, nullable=False, default=0)  # 0 (none) - 5 (very hot)
    calories = db.Column(db.Integer)
    preparation_time = db.Column(db.Integer)  # in minutes

    # Relationships
    restaurant = db.relationship('Restaurant', back_populates='menu_items')

    def to_dict(self):
        return {
            'id': self.id,
            'restaurant_id': self.restaurant_id,
            'name': self.name,
            'description': self.description,
            'price': self.price,
            'category': self.category,
            'image': self.image,
            'is_available': self.is_available,
            'is_vegetarian': self.is_vegetarian,
            'is_vegan': self.is_vegan,
            'spice_level': self.spice_level,
            'calories': self.calories,
            'preparation_time': self.preparation_time,
            'created_at': isoformat(self.created_at),
            'updated_at': isoformat(self.updated_at)
        }


class Driver(TimestampMixin, db.Model):
    __tablename__ = 'drivers'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'),
                        unique=True, nullable=False)
    vehicle_type = db.Column(db.String(50), nullable=False)
    vehicle_license_plate = db.Column(db.String(30), unique=True, nullable=False)  # stored uppercase
    vehicle_color = db.Column(db.String(50))
    image = db.Column(db.String(500))
    rating = db.Column(db.Float)  # derived from reviews
    is_available = db.Column(db.Boolean, nullable=False, default=True)
    total_reviews = db.Column(db.Integer, nullable=False, default=0)

    # Relationships
    user = db.relationship('User', back_populates='driver')

    def to_dict(self, include_user=True):
        data = {
            'id': self.id,
            'user_id': self.user_id,
            'vehicle_type': self.vehicle_type,
            'vehicle_license_plate': self.vehicle_license_plate,
            'vehicle_color': self.vehicle_color,
            'image': self.image,
            'rating': self.rating,
            'is_available': self.is_available,
            'total_reviews': self.total_reviews,
            'created_at': isoformat(self.created_at),
            'updated_at': isoformat(self.updated_at)
        }
        if include_user:
            data['driver'] = self.user.summary() if self.user else None
        return data


class Vehicle(TimestampMixin, db.Model):
    __tablename__ = 'vehicles'

    id = db.Column(db.Integer, primary_key=True)
    type = db.Column(db.String(50), nullable=False)
    price = db.Column(db.String(50), nullable=False)
    image = db.Column(db.String(500))

    def to_dict(self):
        return {
            'id': self.id,
            'type': self.type,
            'price': self.price,
            'image': self.image,
            'created_at': isoformat(self.created_at),
            'updated_at': isoformat(self.updated_at)
        }


class Order(TimestampMixin, db.Model):
    __tablename__ = 'orders'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'),
                        nullable=False, index=True)
    restaurant_id = db.Column(db.Integer, db.ForeignKey('restaurants.id', ondelete='CASCADE'),
                              nullable=False, index=True)
    order = db.Column(db.JSON)  # line items, stored as sent by the client
    status = db.Column(db.Enum(*ORDER_STATUSES, name='order_status'), nullable=False,
                       default='pending', index=True)
    total_price = db.Column(db.Numeric(10, 2, asdecimal=False), nullable=False)
    delivery_address = db.Column(db.Text)
    phone = db.Column(db.String(30))
    placed_at = db.Column(db.DateTime, nullable=False, default=now_utc, index=True)
    delivered_at = db.Column(db.DateTime)

    # Relationships
    customer = db.relationship('User', back_populates='orders')
    restaurant = db.relationship('Restaurant', back_populates='orders')

    def to_dict(self):
        return {
            'id': self.id,
            'user_id': self.user_id,
            'restaurant_id': self.restaurant_id,
            'order': self.order,
            'status': self.status,
            'total_price': self.total_price,
            'delivery_address': self.delivery_address,
            'phone': self.phone,
            'placed_at': isoformat(self.placed_at),
            'delivered_at': isoformat(self.delivered_at),
            'created_at': isoformat(self.created_at),
            'updated_at': isoformat(self.updated_at)
        }
