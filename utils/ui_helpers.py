"""
Encadrés de statut réutilisés par les pages.
"""
import streamlit as st


def _box(message: str, background: str, border: str, icon: str) -> None:
    st.markdown(
        f"""
    <div style="
        background-color: {background};
        border-left: 4px solid {border};
        padding: 14px 18px;
        margin: 12px 0;
        border-radius: 0 8px 8px 0;
        font-weight: 500;
    ">
        {icon} {message}
    </div>
    """,
        unsafe_allow_html=True,
    )


def info_box(message: str, icon: str = "ℹ️"):
    _box(message, "#e8f4fd", "#1e88e5", icon)


def success_box(message: str):
    """Statut positif (ex.: session ouverte)."""
    _box(message, "#e8f5e9", "#43a047", "✅")


def warning_box(message: str):
    """Attention (ex.: session fermée)."""
    _box(message, "#fff3e0", "#fb8c00", "⚠️")


def session_message_box(message: str):
    """Bannière de connexion/déconnexion, couleur selon le contenu."""
    if not message:
        return
    if "Bienvenue" in message or "réussie" in message:
        success_box(message)
    elif "expiré" in message or "fermée" in message:
        warning_box(message)
    else:
        info_box(message)
