from __future__ import annotations

from flask import Flask, jsonify, request

from ..common.datetime_utils import to_iso_utc
from ..common.http import error_response, server_error
from ..common.secrets import check_shared_secret
from ..common.validators import parse_visitor_id
from ..container import Container
from ..core.exceptions import AuthorizationError, DomainError


def _payload() -> dict:
    """JSON body, falling back to form fields."""
    data = request.get_json(silent=True)
    if isinstance(data, dict):
        return data
    return request.form.to_dict()


def register(app: Flask, container: Container) -> None:
    visits = container.visit_service

    def _require_secret(supplied, config_key: str) -> None:
        if not check_shared_secret(supplied, app.config.get(config_key)):
            raise AuthorizationError("Incorrect password.")

    @app.route("/api/register-visitor", methods=["POST"], endpoint="register_visitor")
    def register_visitor():
        form = request.form
        photo_path = None
        try:
            photo_path = container.photos.save(request.files.get("photo"))
            result = visits.register(
                first_name=form.get("first_name", ""),
                last_name=form.get("last_name", ""),
                details=form.to_dict(),
                dependents=form.get("additional_dependents"),
                photo_path=photo_path,
            )
        except DomainError as e:
            return error_response(e)
        except Exception:
            return server_error("Visitor registration failed due to a database error or invalid data.")

        return jsonify({
            "message": "Visitor registered successfully!",
            "id": result.visitor_id,
            "visitId": result.visit_id,
        }), 201

    @app.route("/api/login", methods=["POST"], endpoint="visitor_login")
    def visitor_login():
        data = _payload()
        if not data.get("id"):
            return jsonify({"message": "Visitor ID is required."}), 400
        try:
            result = visits.sign_in(data.get("id"))
        except DomainError as e:
            return error_response(e)
        except Exception:
            return server_error("An unexpected database error occurred during sign-in.")

        return jsonify({
            "message": "Visitor signed in successfully!",
            "visitorData": result.to_payload(),
        }), 200

    @app.route("/api/update-visitor-details", methods=["POST"], endpoint="update_visitor_details")
    def update_visitor_details():
        data = _payload()
        if not data.get("id"):
            return jsonify({"message": "Visitor ID is required for re-registration."}), 400
        try:
            visit_id = visits.update_and_sign_in(
                data.get("id"),
                details=data,
                dependents=data.get("additional_dependents"),
            )
        except DomainError as e:
            return error_response(e)
        except Exception:
            return server_error("Transaction failed while updating visitor details.")

        return jsonify({"message": "Visitor Updated Successfully & signed in!", "id": visit_id}), 201

    @app.route("/api/exit-visitor/<visitor_id>", methods=["POST"], endpoint="exit_visitor")
    def exit_visitor(visitor_id: str):
        try:
            full_name = visits.sign_out(visitor_id)
        except DomainError as e:
            return error_response(e)
        except Exception:
            return server_error("A database error occurred during sign-out.")

        return jsonify({"message": f"{full_name} has been successfully signed out."}), 200

    @app.route("/api/record-missed-visit", methods=["POST"], endpoint="record_missed_visit")
    def record_missed_visit():
        data = _payload()
        try:
            result = visits.record_missed_visit(data.get("visitorId"), data.get("pastEntryTime"))
        except DomainError as e:
            return error_response(e)
        except Exception:
            return server_error("Failed to record historical visit due to a database error.")

        return jsonify({
            "message": "Visitor Entry Time Corrected & Signed Out",
            "entry": to_iso_utc(result.entry_time),
            "exit": to_iso_utc(result.exit_time),
        }), 200

    @app.route("/api/ban-visitor/<visitor_id>", methods=["POST"], endpoint="ban_visitor")
    def ban_visitor(visitor_id: str):
        data = _payload()
        try:
            vid = parse_visitor_id(visitor_id, "A valid Visitor ID is required.")
            _require_secret(data.get("admin_password"), "ADMIN_PASSWORD")
            visits.ban(vid)
        except DomainError as e:
            return error_response(e)
        except Exception:
            return server_error("A database error occurred while trying to ban the visitor.")

        return jsonify({"message": "Visitor has been banned."}), 200

    @app.route("/api/unban-visitor/<visitor_id>", methods=["POST"], endpoint="unban_visitor")
    def unban_visitor(visitor_id: str):
        data = _payload()
        try:
            _require_secret(data.get("password"), "MASTER_PASSWORD")
            visits.unban(parse_visitor_id(visitor_id, "Invalid Visitor ID."))
        except DomainError as e:
            return error_response(e)
        except Exception:
            return server_error("A database error occurred while trying to unban the visitor.")

        return jsonify({"message": "Visitor has been unbanned successfully."}), 200
