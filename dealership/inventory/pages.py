"""Inventory admin pages. Data is loaded and saved by static/js/inventory.js
through the JSON API; the pages only render the shells."""

from flask import redirect, render_template, url_for

from . import inventory_bp
from .repositories import CarRepository
from .schemas import schema_description

_car_repo = CarRepository()


@inventory_bp.route('/')
def index():
    return redirect(url_for('inventory.cars_page'))


@inventory_bp.route('/cars')
def cars_page():
    return render_template('inventory/list.html', schema=schema_description())


@inventory_bp.route('/cars/new')
def create_car_page():
    return render_template('inventory/form.html', car=None, schema=schema_description())


@inventory_bp.route('/cars/upload')
def upload_page():
    return render_template('inventory/upload.html', schema=schema_description())


@inventory_bp.route('/cars/<sku>')
def car_detail_page(sku):
    car = _car_repo.get_by_sku(sku)
    if not car:
        return render_template('inventory/not_found.html', sku=sku), 404
    return render_template('inventory/detail.html', car=car)


@inventory_bp.route('/cars/<sku>/edit')
def edit_car_page(sku):
    car = _car_repo.get_by_sku(sku)
    if not car:
        return render_template('inventory/not_found.html', sku=sku), 404
    return render_template('inventory/form.html', car=car, schema=schema_description())
