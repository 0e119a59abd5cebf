"""Income API endpoints."""
from flask import request
from bucketledger.modules.budget.aggregates import IncomeAggregator
from bucketledger.modules.budget.service import IncomeService
from bucketledger.modules.users.service import UserService
from .schemas import APIResponse, MoneySchema, RecordSchema, RequestValidator
from . import api_v1_bp


@api_v1_bp.route('/users/<int:user_id>/income')
def list_income(user_id):
    UserService.get_user(user_id)
    if request.args.get('recurring', 'false').lower() == 'true':
        records = IncomeService.get_recurring_income(user_id)
    else:
        records = IncomeService.get_user_income(user_id)
    return APIResponse.success({
        'income': RecordSchema.serialize_list(records),
        'total_monthly_income': MoneySchema.serialize(IncomeAggregator.total_monthly_income(user_id)),
    })


@api_v1_bp.route('/users/<int:user_id>/income', methods=['POST'])
def add_income(user_id):
    data = RequestValidator.json_body()
    income = IncomeService.add_income(user_id, data)
    return APIResponse.success(RecordSchema.serialize(income), "Income added successfully"), 201


@api_v1_bp.route('/income/<int:income_id>', methods=['PUT'])
def update_income(income_id):
    data = RequestValidator.json_body()
    income = IncomeService.update_income(income_id, data)
    return APIResponse.success(RecordSchema.serialize(income), "Income updated successfully")


@api_v1_bp.route('/income/<int:income_id>', methods=['DELETE'])
def delete_income(income_id):
    IncomeService.delete_income(income_id)
    return APIResponse.success(message="Income deleted successfully")
