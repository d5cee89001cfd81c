import os
from fooddash import create_app, db
from fooddash.config import DevelopmentConfig, ProductionConfig


def setup_database():
    """Setup database based on environment"""
    env = os.environ.get('FLASK_ENV', 'development')

    if env == 'production':
        app = create_app(ProductionConfig)
        print("Setting up production database...")
    else:
        app = create_app(DevelopmentConfig)
        print("Setting up development database...")

    with app.app_context():
        try:
            # Create all tables
            db.create_all()
            print("Database tables created successfully!")

            from fooddash.models.models import User, Restaurant, MenuItem, Vehicle

            # Check if sample data already exists
            if User.query.first():
                print("Sample data already exists.")
                return

            print("Creating sample data...")

            admin = User(name='Admin', identifier='admin@example.com', role='admin')
            admin.set_password(os.environ.get('SEED_ADMIN_PASSWORD', 'ChangeMe123!'))
            owner = User(name='Sample Owner', identifier='owner@example.com', role='restaurant_owner')
            owner.set_password('owner123')
            db.session.add_all([admin, owner])
            db.session.flush()  # Get user IDs

            restaurant = Restaurant(
                name='Sample Restaurant',
                location='Downtown',
                address='123 Main St',
                phone='555-0123',
                email='sample@restaurant.example.com',
                cuisine_type='Italian',
                delivery_fee=2.99,
                minimum_order=10.00,
                user_id=owner.id
            )
            db.session.add(restaurant)
            db.session.flush()

            db.session.add_all([
                MenuItem(
                    restaurant_id=restaurant.id,
                    name='Margherita Pizza',
                    description='Classic pizza with tomato sauce, mozzarella, and basil',
                    price=12.99,
                    category='Pizza',
                    is_vegetarian=True,
                    preparation_time=15
                ),
                MenuItem(
                    restaurant_id=restaurant.id,
                    name='Pasta Carbonara',
                    description='Creamy pasta with bacon and parmesan',
                    price=14.99,
                    category='Pasta',
                    preparation_time=12
                ),
            ])

            db.session.add_all([
                Vehicle(type='bike', price='2.00'),
                Vehicle(type='car', price='4.50'),
            ])

            db.session.commit()
            print("Sample data created!")
        except Exception as e:
            print(f"Error setting up database: {e}")
            db.session.rollback()


if __name__ == '__main__':
    setup_database()
