from .car_repository import CarRepository

__all__ = ['CarRepository']
