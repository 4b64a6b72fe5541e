from .auth_flow import AuthFlow, AuthState, FunctionSigner, WalletSigner, normalize_wallet_address
from .backend_client import DeskBackend, FakeDeskBackend
from .config import DeskConfig
from .domain_types import (
    PROOF_STATUSES,
    TERMINAL_STATUSES,
    BuiltIntent,
    ComplianceResult,
    DealerIntent,
    IntentSubmission,
    LoginResult,
    OrchestrationResult,
    PlainIntent,
    ProofJob,
    ProofJobAdmission,
    ProofJobsByRun,
    RolePanels,
    Transition,
    WalletSession,
)
from .errors import (
    CryptoConfigError,
    DeskError,
    DomainRejection,
    NoSessionError,
    OrchestrationRejected,
    SessionError,
    SignatureDeclined,
    TransportError,
)
from .http_backend_client import HttpDeskBackend
from .intent_crypto import IntentCrypto
from .orchestration_client import OrchestrationClient
from .proof_tracker import ProofTracker, TrackerView
from .role_gate import normalize_role, panels_for
from .session_store import FileSessionBackend, MemorySessionBackend, SessionStore

__all__ = [
    "PROOF_STATUSES",
    "TERMINAL_STATUSES",
    "AuthFlow",
    "AuthState",
    "BuiltIntent",
    "ComplianceResult",
    "CryptoConfigError",
    "DealerIntent",
    "DeskBackend",
    "DeskConfig",
    "DeskError",
    "DomainRejection",
    "FakeDeskBackend",
    "FileSessionBackend",
    "FunctionSigner",
    "HttpDeskBackend",
    "IntentCrypto",
    "IntentSubmission",
    "LoginResult",
    "MemorySessionBackend",
    "NoSessionError",
    "OrchestrationClient",
    "OrchestrationRejected",
    "OrchestrationResult",
    "PlainIntent",
    "ProofJob",
    "ProofJobAdmission",
    "ProofJobsByRun",
    "ProofTracker",
    "RolePanels",
    "SessionError",
    "SessionStore",
    "SignatureDeclined",
    "TrackerView",
    "Transition",
    "TransportError",
    "WalletSession",
    "WalletSigner",
    "normalize_role",
    "normalize_wallet_address",
    "panels_for",
]
