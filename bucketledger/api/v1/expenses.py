"""Expense API endpoints."""
from flask import request
from bucketledger.modules.budget.service import ExpenseService
from bucketledger.modules.users.service import UserService
from .schemas import APIResponse, RecordSchema, RequestValidator
from . import api_v1_bp


@api_v1_bp.route('/users/<int:user_id>/expenses')
def list_expenses(user_id):
    """Get expenses for user, optionally filtered by month and bucket."""
    UserService.get_user(user_id)
    year_month = RequestValidator.year_month_arg('ym')
    bucket_id = request.args.get('bucket_id', type=int)
    limit = request.args.get('limit', 50, type=int)
    offset = request.args.get('offset', 0, type=int)

    expenses = ExpenseService.get_user_expenses(user_id, year_month=year_month, bucket_id=bucket_id)
    total_count = len(expenses)
    expenses = expenses[offset:offset + limit]

    data = {
        'expenses': RecordSchema.serialize_list(expenses),
        'pagination': {
            'total': total_count,
            'limit': limit,
            'offset': offset,
            'has_more': offset + limit < total_count
        },
        'filters': {
            'year_month': str(year_month) if year_month else None,
            'bucket_id': bucket_id
        }
    }
    return APIResponse.success(data)


@api_v1_bp.route('/users/<int:user_id>/expenses', methods=['POST'])
def create_expense(user_id):
    data = RequestValidator.json_body()
    expense = ExpenseService.add_expense(user_id, data)
    return APIResponse.success(RecordSchema.serialize(expense), "Expense created successfully"), 201


@api_v1_bp.route('/expenses/<int:expense_id>', methods=['PUT'])
def update_expense(expense_id):
    data = RequestValidator.json_body()
    expense = ExpenseService.update_expense(expense_id, data)
    return APIResponse.success(RecordSchema.serialize(expense), "Expense updated successfully")


@api_v1_bp.route('/expenses/<int:expense_id>', methods=['DELETE'])
def delete_expense(expense_id):
    ExpenseService.delete_expense(expense_id)
    return APIResponse.success(message="Expense deleted successfully")
