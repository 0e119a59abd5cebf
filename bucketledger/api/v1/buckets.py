"""Bucket API endpoints."""
from flask import request
from bucketledger.modules.budget.aggregates import SpendAggregator
from bucketledger.modules.budget.service import BucketService
from bucketledger.modules.users.service import UserService
from .schemas import APIResponse, BucketSchema, MoneySchema, RequestValidator
from . import api_v1_bp


@api_v1_bp.route('/users/<int:user_id>/buckets')
def list_buckets(user_id):
    """Get buckets for user, with spend derived for the running cycle."""
    UserService.get_user(user_id)
    include_inactive = request.args.get('include_inactive', 'false').lower() == 'true'
    buckets = BucketService.get_user_buckets(user_id, include_inactive=include_inactive)
    return APIResponse.success({'buckets': BucketSchema.serialize_list(buckets)})


@api_v1_bp.route('/users/<int:user_id>/buckets', methods=['POST'])
def create_bucket(user_id):
    data = RequestValidator.json_body()
    bucket = BucketService.create_bucket(user_id, data)
    return APIResponse.success(BucketSchema.serialize(bucket), "Bucket created successfully"), 201


@api_v1_bp.route('/buckets/<int:bucket_id>')
def get_bucket(bucket_id):
    return APIResponse.success(BucketSchema.serialize(BucketService.get_bucket(bucket_id)))


@api_v1_bp.route('/buckets/<int:bucket_id>', methods=['PUT'])
def update_bucket(bucket_id):
    data = RequestValidator.json_body()
    bucket = BucketService.update_bucket(bucket_id, data)
    return APIResponse.success(BucketSchema.serialize(bucket), "Bucket updated successfully")


@api_v1_bp.route('/buckets/<int:bucket_id>', methods=['DELETE'])
def delete_bucket(bucket_id):
    BucketService.delete_bucket(bucket_id)
    return APIResponse.success(message="Bucket deleted successfully")


@api_v1_bp.route('/buckets/<int:bucket_id>/spent')
def bucket_spent(bucket_id):
    """Spent amount for an optional ``start``/``end`` date range (end exclusive)."""
    bucket = BucketService.get_bucket(bucket_id)
    start = RequestValidator.date_arg('start')
    end = RequestValidator.date_arg('end')
    spent = SpendAggregator.spent(bucket.id, start, end)
    return APIResponse.success({
        'bucket_id': bucket.id,
        'start': start.isoformat() if start else None,
        'end': end.isoformat() if end else None,
        'spent': MoneySchema.serialize(spent),
    })
