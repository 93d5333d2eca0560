from flask import Blueprint, current_app, jsonify

from disbursement.worker import DisbursementWorker

disbursement_bp = Blueprint("disbursements", __name__)


@disbursement_bp.route("/health", methods=["GET"])
def health():
    return jsonify({"status": "Disbursement Service OK"}), 200


@disbursement_bp.route("/disbursements/execute", methods=["POST"])
def execute_disbursements():
    """
    Run the disbursement computation for every merchant.

    Response: {"status": "success", "today": "...", "disbursements": 3, "merchants": [...]}
    Merchants that failed are listed with their "error"; the run itself still succeeds.
    """
    report = DisbursementWorker(current_app._get_current_object()).perform()
    return jsonify({"status": "success", **report.to_dict()}), 200
