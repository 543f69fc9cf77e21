"""
JSON API for resources.

Every call runs with the context of the logged-in user (anonymous when
nobody is logged in); access control and update interception are applied by
the resource layer.
"""

from flask import Blueprint, request, jsonify, current_app

from demosite import acl, rsc
from demosite.utils.helpers import format_utc_iso

# Create blueprint
api_bp = Blueprint('api', __name__, url_prefix='/api')

_DATETIME_PROPS = ('created', 'modified')


def _resource_json(resource):
    props = resource.to_props()
    for key in _DATETIME_PROPS:
        props[key] = format_utc_iso(props[key])
    return props


def _json_body():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return None
    return data


# -------------------- ERROR HANDLERS --------------------

@api_bp.errorhandler(acl.AccessDenied)
def handle_access_denied(e):
    current_app.logger.info(f"Access denied: {e}")
    return jsonify(error='Forbidden'), 403


@api_bp.errorhandler(rsc.ResourceNotFound)
def handle_not_found(e):
    return jsonify(error='Not found'), 404


@api_bp.errorhandler(rsc.ResourceProtected)
def handle_protected(e):
    return jsonify(error='Resource is protected'), 409


@api_bp.errorhandler(rsc.ResourceConflict)
def handle_conflict(e):
    return jsonify(error='Conflicts with an existing resource'), 409


@api_bp.errorhandler(rsc.UpdateRejected)
def handle_update_rejected(e):
    return jsonify(error=e.reason), 400


# -------------------- RESOURCES --------------------

@api_bp.route('/rsc', methods=['POST'])
def create_resource():
    data = _json_body()
    if data is None:
        return jsonify(error='Expected a JSON object'), 400
    id = rsc.insert(data, acl.current_context())
    return jsonify(_resource_json(rsc.get(id))), 201


@api_bp.route('/rsc/<int:id>', methods=['GET'])
def get_resource(id):
    resource = rsc.get(id)
    if resource is None:
        raise rsc.ResourceNotFound(id)
    acl.require('view', resource.id, acl.current_context())
    return jsonify(_resource_json(resource))


@api_bp.route('/rsc/<int:id>', methods=['PATCH'])
def update_resource(id):
    data = _json_body()
    if data is None:
        return jsonify(error='Expected a JSON object'), 400
    rsc.update(id, data, acl.current_context())
    return jsonify(_resource_json(rsc.get(id)))


@api_bp.route('/rsc/<int:id>', methods=['DELETE'])
def delete_resource(id):
    rsc.delete(id, acl.current_context())
    return jsonify(ok=True)
