from __future__ import annotations

from datetime import date

from flask import Flask, jsonify, request

from ..common.http import error_response, server_error
from ..common.secrets import check_shared_secret
from ..container import Container
from ..core.exceptions import DomainError


def register(app: Flask, container: Container) -> None:
    roster = container.roster_service

    def _base_url() -> str:
        return request.host_url.rstrip("/")

    def _history_rows():
        return roster.history(
            search=request.args.get("search"),
            start_date=request.args.get("start_date"),
            end_date=request.args.get("end_date"),
            base_url=_base_url(),
        )

    @app.route("/api/visitors", methods=["GET"], endpoint="active_visitors")
    def active_visitors():
        try:
            rows = roster.active_roster(base_url=_base_url())
        except Exception:
            return server_error("Failed to retrieve active visitor data.")
        return jsonify(rows), 200

    @app.route("/api/visitor-search", methods=["GET"], endpoint="visitor_search")
    def visitor_search():
        try:
            rows = roster.search_by_name(request.args.get("name"), base_url=_base_url())
        except DomainError as e:
            return error_response(e)
        except Exception:
            return server_error("Failed to search visitors due to a database error.")
        return jsonify(rows), 200

    @app.route("/api/history", methods=["GET"], endpoint="visit_history")
    def visit_history():
        try:
            rows = _history_rows()
        except DomainError as e:
            return error_response(e)
        except Exception:
            return server_error("Failed to retrieve historical data from the database.")
        return jsonify(rows), 200

    @app.route("/api/history/export", methods=["GET"], endpoint="visit_history_export")
    def visit_history_export():
        """Same filters as /api/history, rendered as a CSV attachment."""
        try:
            rows = _history_rows()
        except DomainError as e:
            return error_response(e)
        except Exception:
            return server_error("Failed to retrieve historical data from the database.")

        filename = f"visit_history_{date.today().isoformat()}.csv"
        csv_bytes = roster.history_csv(rows).encode("utf-8-sig")
        return app.response_class(
            csv_bytes,
            mimetype="text/csv",
            headers={"Content-Disposition": f"attachment; filename={filename}"},
        )

    @app.route("/api/authorize-history", methods=["POST"], endpoint="authorize_history")
    def authorize_history():
        data = request.get_json(silent=True) or {}
        if not check_shared_secret(data.get("password"), app.config.get("HISTORY_PASSWORD")):
            return jsonify({"message": "Incorrect password."}), 403
        return jsonify({"success": True, "message": "Authorization successful."}), 200
