"""Rollover API endpoints."""
from flask import request
from bucketledger.modules.rollover.service import RolloverService
from .schemas import APIResponse, jsonable
from . import api_v1_bp


@api_v1_bp.route('/users/<int:user_id>/rollover', methods=['POST'])
def perform_rollover(user_id):
    """Manual rollover; not guarded by the calendar check."""
    result = RolloverService.perform_monthly_rollover(user_id, trigger='manual')
    return APIResponse.success(jsonable(result), "Rollover completed")


@api_v1_bp.route('/users/<int:user_id>/rollover/check', methods=['POST'])
def check_rollover(user_id):
    result = RolloverService.check_and_perform_rollover(user_id)
    message = "Rollover completed" if result['performed'] else result.get('message')
    return APIResponse.success(jsonable(result), message)


@api_v1_bp.route('/users/<int:user_id>/rollover/history')
def rollover_history(user_id):
    limit = request.args.get('limit', 12, type=int)
    runs = RolloverService.get_history(user_id, limit=limit)
    return APIResponse.success({'runs': [run.to_dict(include_entries=True) for run in runs]})
