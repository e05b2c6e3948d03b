from rest_framework import permissions
from rest_framework import status
from rest_framework.response import Response

ERROR_STATUS_CODES = {
    'unauthorized': status.HTTP_401_UNAUTHORIZED,
    'forbidden': status.HTTP_403_FORBIDDEN,
    'not_found': status.HTTP_404_NOT_FOUND,
    'validation': status.HTTP_400_BAD_REQUEST,
    'conflict': status.HTTP_409_CONFLICT,
    'invalid_transition': status.HTTP_409_CONFLICT,
    'unexpected': status.HTTP_500_INTERNAL_SERVER_ERROR,
}


class IsPoster(permissions.BasePermission):
    def has_permission(self, request, view):
        if not request.user.is_authenticated:
            return False
        return request.user.is_poster


class IsDoer(permissions.BasePermission):
    def has_permission(self, request, view):
        if not request.user.is_authenticated:
            return False
        return request.user.is_doer


class IsAdminRole(permissions.BasePermission):
    def has_permission(self, request, view):
        if not request.user.is_authenticated:
            return False
        return request.user.is_admin_role


def envelope_response(result, serializer_class=None, many=False, success_status=status.HTTP_200_OK, context=None):
    """Render an ActionResult as the JSON envelope, serializing ``data`` when asked."""
    if not result.success:
        return Response(result.as_dict(), status=ERROR_STATUS_CODES.get(result.kind, status.HTTP_400_BAD_REQUEST))
    data = result.data
    if serializer_class is not None and data is not None:
        data = serializer_class(data, many=many, context=context or {}).data
    return Response(result.as_dict(data=data), status=success_status)


def validation_error_response(errors):
    """Envelope for request bodies rejected by a DRF serializer."""
    return Response(
        {'success': False, 'error': _first_error(errors), 'errors': errors},
        status=status.HTTP_400_BAD_REQUEST,
    )


def _first_error(errors):
    if isinstance(errors, dict):
        for field, value in errors.items():
            message = _first_error(value)
            if message:
                return message if field == 'non_field_errors' else f"{field}: {message}"
    elif isinstance(errors, (list, tuple)) and errors:
        return _first_error(errors[0])
    elif errors:
        return str(errors)
    return "Invalid request"
