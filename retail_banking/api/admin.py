"""
Admin endpoints (batch jobs, summary, fraud alerts)
"""

from typing import Any, Dict
from fastapi import APIRouter, Depends

from .dependencies import get_bank
from ..bank import Bank


router = APIRouter()


@router.post("/interest")
def credit_monthly_interest(bank: Bank = Depends(get_bank)) -> Dict[str, Any]:
    """Credit monthly interest to active savings accounts"""
    return {"accounts_credited": bank.credit_monthly_interest()}


@router.post("/maintenance-fees")
def charge_maintenance_fees(bank: Bank = Depends(get_bank)) -> Dict[str, Any]:
    """Charge maintenance fees. Not guarded against repeat runs."""
    return {"accounts_charged": bank.charge_maintenance_fees()}


@router.post("/daily-maintenance")
def run_daily_maintenance(bank: Bank = Depends(get_bank)) -> Dict[str, Any]:
    return bank.run_daily_maintenance()


@router.get("/summary")
def get_summary(bank: Bank = Depends(get_bank)) -> Dict[str, Any]:
    return bank.summary().to_dict()


@router.get("/fraud-alerts")
def get_fraud_alerts(bank: Bank = Depends(get_bank)) -> Dict[str, Any]:
    return {"alerts": [alert.to_dict() for alert in bank.fraud_alerts()]}
