"""Distribution API endpoints."""
from bucketledger.modules.budget.allocation import DistributionService
from bucketledger.modules.users.service import UserService
from .schemas import APIResponse, DistributionSchema
from . import api_v1_bp


@api_v1_bp.route('/users/<int:user_id>/distribution', methods=['POST'])
def calculate_distribution(user_id):
    """Recompute and persist funded amounts."""
    UserService.get_user(user_id)
    result = DistributionService.calculate_distribution(user_id)
    return APIResponse.success(DistributionSchema.serialize(result), "Distribution recalculated")


@api_v1_bp.route('/users/<int:user_id>/distribution')
def distribution_status(user_id):
    """Read-only distribution snapshot."""
    UserService.get_user(user_id)
    return APIResponse.success(DistributionSchema.serialize(DistributionService.get_distribution_status(user_id)))
