"""Inventory API routes — list, CRUD, diff preview, Excel import/export."""

import logging
from datetime import date

from flask import jsonify, request, send_file
from werkzeug.exceptions import RequestEntityTooLarge

from . import inventory_bp
from .config import get_config
from .constants import EXCEL_MIME_TYPES
from .diff import calculate_car_diff
from .repositories import CarRepository
from .schemas import CreateCarRequest, UpdateCarRequest, parse_car, parse_list_query, schema_description
from .services.excel_service import (
    parse_excel_file, validate_and_parse_car_data, build_export_workbook, build_import_template,
)
from core.exceptions import NotFoundError, ValidationError
from core.utils.api_helpers import get_json_or_error, error_response

logger = logging.getLogger('dealership.inventory.routes')

_car_repo = CarRepository()

XLSX_MIMETYPE = EXCEL_MIME_TYPES[0]


def _sort_pairs(query):
    return [(option.field, option.direction) for option in query.sort]


# ════════════════════════════════════════════════════════════════
# Cars
# ════════════════════════════════════════════════════════════════

@inventory_bp.route('/api/cars', methods=['GET'])
def api_list_cars():
    """Active cars. Query: offset, limit, sort=field:dir,..., sku, model, make,
    priceMin, priceMax, yearMin, yearMax, color."""
    try:
        query = parse_list_query(request.args)
        cars, total = _car_repo.list_active(
            offset=query.offset,
            limit=query.limit,
            sort=_sort_pairs(query),
            filters=query.filters(),
        )
    except Exception as e:
        return error_response(e)
    return jsonify({'cars': cars, 'total': total, 'offset': query.offset, 'limit': query.limit})


@inventory_bp.route('/api/cars/<sku>', methods=['GET'])
def api_get_car(sku):
    try:
        car = _car_repo.get_by_sku(sku)
    except Exception as e:
        return error_response(e)
    if not car:
        return jsonify({'success': False, 'error': f'Car with SKU "{sku}" not found'}), 404
    return jsonify(car)


@inventory_bp.route('/api/cars', methods=['POST'])
def api_create_car():
    data, error = get_json_or_error()
    if error:
        return error
    try:
        car = _car_repo.create(parse_car(data, CreateCarRequest))
    except Exception as e:
        return error_response(e)
    return jsonify(car), 201


@inventory_bp.route('/api/cars/<sku>', methods=['PUT'])
def api_update_car(sku):
    """Replace model, make, price, year and color. The SKU itself never changes."""
    data, error = get_json_or_error()
    if error:
        return error
    try:
        car = _car_repo.update(sku, parse_car(data, UpdateCarRequest))
    except Exception as e:
        return error_response(e)
    return jsonify(car)


@inventory_bp.route('/api/cars/<sku>', methods=['DELETE'])
def api_delete_car(sku):
    try:
        car = _car_repo.soft_delete(sku)
    except Exception as e:
        return error_response(e)
    return jsonify({'message': 'Car deleted successfully', 'car': car})


@inventory_bp.route('/api/cars/<sku>/diff', methods=['POST'])
def api_car_diff(sku):
    """Preview what an update would change, for the confirmation dialog."""
    data, error = get_json_or_error()
    if error:
        return error
    try:
        proposed = parse_car(data, UpdateCarRequest)
        current = _car_repo.get_by_sku(sku)
        if not current:
            raise NotFoundError(sku)
    except Exception as e:
        return error_response(e)
    return jsonify({'sku': sku, 'changes': calculate_car_diff(current, proposed)})


# ════════════════════════════════════════════════════════════════
# Excel import / export
# ════════════════════════════════════════════════════════════════

def _too_large_message(max_bytes):
    return f'File size exceeds maximum allowed size of {max_bytes // (1024 * 1024)}MB'


def _read_excel_upload():
    """Bytes of the uploaded `file` field, after type and size checks."""
    max_bytes = get_config().MAX_UPLOAD_BYTES

    try:
        file = request.files.get('file')
    except RequestEntityTooLarge:
        raise ValidationError(_too_large_message(max_bytes))
    if not file or not file.filename:
        raise ValidationError('No file uploaded')
    if file.mimetype not in EXCEL_MIME_TYPES:
        raise ValidationError('Invalid file type. Only .xlsx and .xls files are allowed')

    data = file.read(max_bytes + 1)
    if len(data) > max_bytes:
        raise ValidationError(_too_large_message(max_bytes))
    return data


def _ingest_upload():
    """Parse and validate the uploaded workbook: (valid_cars, row_errors)."""
    rows, _ = parse_excel_file(_read_excel_upload())
    return validate_and_parse_car_data(rows)


@inventory_bp.route('/api/cars/excel/insert', methods=['POST'])
def api_excel_insert():
    """Insert new cars from an Excel file. Existing SKUs are reported, not updated."""
    try:
        valid_cars, row_errors = _ingest_upload()
        result = _car_repo.bulk_insert(valid_cars)
    except Exception as e:
        return error_response(e)

    logger.info(f'Excel insert: {result["inserted"]} inserted, '
                f'{len(row_errors)} invalid rows, {len(result["failed"])} rejected')
    return jsonify({
        'inserted': result['inserted'],
        'updated': 0,
        'failed': row_errors + result['failed'],
    })


@inventory_bp.route('/api/cars/excel/update', methods=['POST'])
def api_excel_update():
    """Update existing cars from an Excel file. Unknown SKUs are reported."""
    try:
        valid_cars, row_errors = _ingest_upload()
        result = _car_repo.bulk_update(valid_cars)
    except Exception as e:
        return error_response(e)

    logger.info(f'Excel update: {result["updated"]} updated, '
                f'{len(row_errors)} invalid rows, {len(result["failed"])} rejected')
    return jsonify({
        'inserted': 0,
        'updated': result['updated'],
        'failed': row_errors + result['failed'],
    })


@inventory_bp.route('/api/cars/excel/export', methods=['GET'])
def api_excel_export():
    """Active cars matching the list filters and sort, as .xlsx."""
    try:
        query = parse_list_query(request.args)
        cars = _car_repo.export_rows(sort=_sort_pairs(query), filters=query.filters())
        buffer = build_export_workbook(cars)
    except Exception as e:
        return error_response(e)
    return send_file(
        buffer,
        mimetype=XLSX_MIMETYPE,
        as_attachment=True,
        download_name=f'cars_{date.today().isoformat()}.xlsx',
    )


@inventory_bp.route('/api/cars/excel/template', methods=['GET'])
def api_excel_template():
    return send_file(
        build_import_template(),
        mimetype=XLSX_MIMETYPE,
        as_attachment=True,
        download_name='cars_import_template.xlsx',
    )


# ════════════════════════════════════════════════════════════════
# Misc
# ════════════════════════════════════════════════════════════════

@inventory_bp.route('/api/schema/car', methods=['GET'])
def api_car_schema():
    """Validation constants for the admin forms."""
    return jsonify(schema_description())


@inventory_bp.route('/api/message', methods=['GET'])
def api_message():
    try:
        count = _car_repo.count_active()
    except Exception as e:
        return error_response(e)
    return jsonify({
        'message': f"Welcome to the Car Dealership! We have {count} car{'' if count == 1 else 's'} in catalog"
    })
