"""User API endpoints."""
from bucketledger.modules.users.service import UserService
from .schemas import APIResponse, RecordSchema, RequestValidator
from . import api_v1_bp


@api_v1_bp.route('/users')
def list_users():
    return APIResponse.success({'users': RecordSchema.serialize_list(UserService.list_users())})


@api_v1_bp.route('/users', methods=['POST'])
def create_user():
    data = RequestValidator.json_body()
    user = UserService.create_user(data.get('name'))
    return APIResponse.success(RecordSchema.serialize(user), "User created successfully"), 201


@api_v1_bp.route('/users/<int:user_id>')
def get_user(user_id):
    return APIResponse.success(RecordSchema.serialize(UserService.get_user(user_id)))
