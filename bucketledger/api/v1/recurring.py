"""Recurring expense API endpoints."""
from bucketledger.modules.budget.service import RecurringExpenseService
from bucketledger.modules.users.service import UserService
from .schemas import APIResponse, RecordSchema, RequestValidator
from . import api_v1_bp


@api_v1_bp.route('/users/<int:user_id>/recurring-expenses')
def list_recurring_expenses(user_id):
    UserService.get_user(user_id)
    templates = RecurringExpenseService.get_user_templates(user_id)
    return APIResponse.success({'recurring_expenses': RecordSchema.serialize_list(templates)})


@api_v1_bp.route('/users/<int:user_id>/recurring-expenses', methods=['POST'])
def create_recurring_expense(user_id):
    data = RequestValidator.json_body()
    template = RecurringExpenseService.create_template(user_id, data)
    return APIResponse.success(RecordSchema.serialize(template), "Recurring expense created successfully"), 201


@api_v1_bp.route('/recurring-expenses/<int:template_id>', methods=['PUT'])
def update_recurring_expense(template_id):
    data = RequestValidator.json_body()
    template = RecurringExpenseService.update_template(template_id, data)
    return APIResponse.success(RecordSchema.serialize(template), "Recurring expense updated successfully")


@api_v1_bp.route('/recurring-expenses/<int:template_id>', methods=['DELETE'])
def delete_recurring_expense(template_id):
    RecurringExpenseService.delete_template(template_id)
    return APIResponse.success(message="Recurring expense deleted successfully")
