"""Safeguard HTTP handler - thin caller over the safety engine.

Maps engine errors to status codes:
- InvalidInputError -> 400
- NotFoundError -> 404
- RepositoryError -> 503

The authenticated user id arrives in the X-User-Id header, set by the
platform's gateway. Responses use the {"success": ..., "data": ...}
envelope the dashboard expects.
"""
import asyncio
import logging
from typing import Optional

from flask import Flask, g, jsonify, request

from safeguard import __version__
from safeguard.shared.database import NotFoundError, RepositoryError
from safeguard.shared.exceptions import InvalidInputError
from safeguard.shared.utils import hash_pii
from safeguard.services.container import Services, build_services_from_env
from safeguard.services.threat_service import relevant_mitigations

logger = logging.getLogger(__name__)

USER_HEADER = "X-User-Id"

# Routes that do not act on behalf of a user
PUBLIC_ENDPOINTS = {"health", "ready", "static"}


def create_app(services: Optional[Services] = None) -> Flask:
    """Create the Flask app.

    Args:
        services: Wired components; built from the environment if None
    """
    services = services or build_services_from_env()
    app = Flask(__name__)

    @app.before_request
    def require_user():
        if request.endpoint in PUBLIC_ENDPOINTS:
            return None
        user_id = request.headers.get(USER_HEADER)
        if not user_id:
            logger.warning("REQUEST_UNAUTHENTICATED", extra={"path": request.path})
            return jsonify({"success": False, "error": "Authentication required"}), 401
        g.user_id = user_id
        return None

    @app.errorhandler(InvalidInputError)
    def invalid_input(e):
        logger.warning(
            "REQUEST_INVALID",
            extra={"path": request.path, "field": e.field, "error": str(e)}
        )
        return jsonify({"success": False, "error": str(e), "field": e.field or None}), 400

    @app.errorhandler(NotFoundError)
    def not_found(e):
        return jsonify({"success": False, "error": str(e)}), 404

    @app.errorhandler(RepositoryError)
    def store_unavailable(e):
        logger.error(
            "REQUEST_STORE_FAILURE",
            extra={"path": request.path, "error": str(e)}
        )
        return jsonify({"success": False, "error": "Storage temporarily unavailable"}), 503

    @app.route("/health", methods=["GET"])
    def health():
        return jsonify({
            "status": "healthy",
            "service": "safeguard",
            "version": __version__,
            "pattern_version": services.content_analyzer.library.version,
        }), 200

    @app.route("/ready", methods=["GET"])
    def ready():
        if services.connection_manager is not None:
            check = services.connection_manager.health_check()
            if not check["healthy"]:
                return jsonify({"status": "not_ready", "database": check}), 503
        return jsonify({"status": "ready"}), 200

    # ------------------------------------------------------------------
    # Profile
    # ------------------------------------------------------------------

    @app.route("/safety/profile", methods=["GET"])
    def get_profile():
        profile = services.profile_manager.get_or_create(g.user_id)
        return _ok(profile.to_dict())

    @app.route("/safety/profile", methods=["PUT"])
    def update_profile():
        profile = services.profile_manager.upsert(g.user_id, _json_body())
        return _ok(profile.to_dict(), "Safety profile updated successfully")

    @app.route("/safety/assess-risk", methods=["POST"])
    def assess_risk():
        result = services.profile_manager.assess_risk(g.user_id)
        return _ok(result.to_dict())

    @app.route("/safety/stats", methods=["GET"])
    def safety_stats():
        time_range = _int_arg("timeRange", 30)
        return _ok(services.profile_manager.get_safety_stats(g.user_id, time_range))

    # ------------------------------------------------------------------
    # Content
    # ------------------------------------------------------------------

    @app.route("/safety/analyze-content", methods=["POST"])
    def analyze_content():
        data = _json_body()
        report = services.content_analyzer.analyze(
            user_id=g.user_id,
            content=data.get("content"),
            platform=data.get("platform"),
            risk_tolerance=data.get("riskTolerance"),
            context=data.get("context"),
            content_id=data.get("contentId"),
        )
        return _ok(report.to_dict())

    @app.route("/safety/generate-safe-alternative", methods=["POST"])
    def generate_safe_alternative():
        if services.alternative_generator is None:
            return jsonify({
                "success": False,
                "error": "Safe alternative generation is not configured",
            }), 503

        data = _json_body()
        result = asyncio.run(services.alternative_generator.generate(
            user_id=g.user_id,
            content=data.get("content"),
            platform=data.get("platform"),
            context=data.get("context"),
        ))
        if not result.success:
            return jsonify({"success": False, "error": result.error}), 502
        return _ok(result.to_dict())

    # ------------------------------------------------------------------
    # Incidents
    # ------------------------------------------------------------------

    @app.route("/safety/incidents", methods=["POST"])
    def report_incident():
        incident = services.incident_manager.report(g.user_id, _json_body())
        return _ok(incident.to_public_dict(), "Incident reported successfully", 201)

    @app.route("/safety/incidents", methods=["GET"])
    def list_incidents():
        page = services.incident_manager.list_incidents(
            g.user_id,
            status=request.args.get("status"),
            limit=_int_arg("limit", 20),
            page=_int_arg("page", 1),
        )
        return _ok(page.to_dict())

    @app.route("/safety/incidents/<incident_id>/status", methods=["PUT"])
    def update_incident_status(incident_id):
        data = _json_body()
        if not data.get("status"):
            raise InvalidInputError("Status is required", field="status")
        incident = services.incident_manager.update_status(
            incident_id, g.user_id, data["status"], resolution=data.get("resolution")
        )
        return _ok(incident.to_public_dict(), "Incident status updated successfully")

    # ------------------------------------------------------------------
    # Community threats
    # ------------------------------------------------------------------

    @app.route("/safety/threats/relevant", methods=["GET"])
    def relevant_threats():
        profile = services.profile_manager.get_or_create(g.user_id)
        threats = services.threat_aggregator.find_relevant_for_profile(
            profile, _int_arg("limit", 10)
        )
        views = []
        for threat in threats:
            view = services.threat_aggregator.to_view(threat)
            view["relevantMitigations"] = [
                m.to_dict() for m in relevant_mitigations(threat, profile.risk_tolerance)
            ]
            views.append(view)
        return _ok(views)

    @app.route("/safety/threats/trending", methods=["GET"])
    def trending_threats():
        threats = services.threat_aggregator.find_trending(_int_arg("limit", 10))
        return _ok([services.threat_aggregator.to_view(t) for t in threats])

    @app.route("/safety/threats/stats", methods=["GET"])
    def threat_stats():
        stats = services.threat_aggregator.threat_stats(
            region=request.args.get("region"),
            time_range_days=_int_arg("timeRange", 30),
        )
        return _ok([s.to_dict() for s in stats])

    logger.info(
        "SAFEGUARD_APP_CREATED",
        extra={"pattern_version": services.content_analyzer.library.version}
    )
    return app


def _ok(data, message: Optional[str] = None, status: int = 200):
    body = {"success": True, "data": data}
    if message:
        body["message"] = message
    logger.debug(
        "REQUEST_COMPLETED",
        extra={"path": request.path, "user_id_hash": hash_pii(g.user_id), "status": status}
    )
    return jsonify(body), status


def _json_body() -> dict:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise InvalidInputError("Request body must be a JSON object")
    return data


def _int_arg(name: str, default: int) -> int:
    raw = request.args.get(name)
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError:
        raise InvalidInputError(f"{name} must be an integer", field=name)
    if value < 1:
        raise InvalidInputError(f"{name} must be positive", field=name)
    return value
