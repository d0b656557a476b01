"""Pydantic models for the kas backend API."""

from datetime import date, datetime
from typing import Any, Dict, Literal, Optional, Union

from pydantic import BaseModel, Field

# Supabase ids come back as uuid strings or bigint depending on the table
RowId = Union[int, str]


# ── OTP ───────────────────────────────────────────────────────────────────


class OtpRecord(BaseModel):
    """A one-time code issued to an email address."""
    id: str = Field(..., description="Issuance identifier")
    email: str = Field(..., description="Recipient address, case-sensitive")
    code: str = Field(..., description="6-digit numeric code")
    expires_at: datetime = Field(..., description="Absolute expiry (UTC)")
    used: bool = Field(default=False, description="Set once on successful verification")
    created_at: datetime = Field(..., description="Issuance time (UTC)")

    def is_expired(self, now: datetime) -> bool:
        return now > self.expires_at


class OtpRequest(BaseModel):
    email: str = Field(..., min_length=1, description="Address to send the code to")


class OtpVerifyRequest(BaseModel):
    """Verify a code. Registration fields switch the flow to account creation."""
    email: str = Field(..., min_length=1)
    otp_code: str = Field(..., min_length=1)
    password: Optional[str] = Field(None, description="Registration only")
    full_name: Optional[str] = Field(None, description="Registration only")
    kelas_id: Optional[RowId] = Field(None, description="Registration only")
    absen: Optional[int] = Field(None, description="Attendance number, registration only")

    @property
    def is_registration(self) -> bool:
        return bool(self.password or self.full_name)


class Registration(BaseModel):
    """Profile fields captured when an OTP verification creates an account."""
    full_name: str = Field(..., min_length=1)
    password: Optional[str] = None
    kelas_id: Optional[RowId] = None
    absen: Optional[int] = None


# ── Auth responses ────────────────────────────────────────────────────────


class MessageResponse(BaseModel):
    message: str


class RegistrationResponse(BaseModel):
    message: str
    user_id: str


class LoginResponse(BaseModel):
    message: str
    access_token: str
    token_type: str = "bearer"
    user: Dict[str, Any]


# ── Password auth ─────────────────────────────────────────────────────────


class RegisterRequest(BaseModel):
    email: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)
    full_name: str = Field(..., min_length=1)
    kelas_id: Optional[RowId] = None
    absen: Optional[int] = None


class LoginRequest(BaseModel):
    email: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


# ── Ledger ────────────────────────────────────────────────────────────────


class PemasukanCreate(BaseModel):
    """Income entry: a student's dues payment to their class."""
    user_id: str = Field(..., min_length=1)
    kelas_id: RowId = Field(..., description="Class receiving the payment")
    nominal: int = Field(..., gt=0, description="Amount in rupiah")
    tanggal: Optional[date] = Field(None, description="Defaults to today server-side")


class PengeluaranCreate(BaseModel):
    """Expense entry paid out of a class's cash."""
    kelas_id: RowId
    alasan: str = Field(..., min_length=1, description="Reason for the expense")
    nominal: int = Field(..., gt=0, description="Amount in rupiah")
    tanggal: Optional[date] = None


# ── Admin requests ────────────────────────────────────────────────────────

AdminRequestStatus = Literal["pending", "approved", "rejected"]


class AdminRequestCreate(BaseModel):
    user_id: str = Field(..., min_length=1)
    kelas_id: RowId


class AdminRequestStatusUpdate(BaseModel):
    status: AdminRequestStatus


# ── Profile ───────────────────────────────────────────────────────────────


class ProfileUpdate(BaseModel):
    full_name: Optional[str] = Field(None, min_length=1)
    kelas_id: Optional[RowId] = None
    absen: Optional[int] = None
    avatar_url: Optional[str] = None


# ── Health ────────────────────────────────────────────────────────────────


class HealthResponse(BaseModel):
    ok: bool
    service: str
    now: datetime
