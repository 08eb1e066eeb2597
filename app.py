import sys
from pathlib import Path

# Garantit que la racine du projet est dans le path (lancement depuis n'importe quel cwd)
_ROOT = Path(__file__).resolve().parents[0]
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

import logging
from datetime import date

import streamlit as st

from config import settings
from config.database import SessionLocal, init_db
from config.logging_config import configure_logging
from services.auth_service import LoginOutcome, get_auth_service, sync_browser_session
from services.session_cleanup import SessionSweeper
from services.session_service import SessionService
from utils.formatters import format_date, format_open_session
from utils.navigation import show_sidebar
from utils.ui_helpers import session_message_box, success_box, warning_box

logger = logging.getLogger(__name__)

st.set_page_config(
    page_title=settings.APP_TITLE,
    page_icon="🏦",
    layout="wide",
    initial_sidebar_state="expanded",
    menu_items={
        "Get Help": None,
        "Report a bug": None,
        "About": None,
    },
)


@st.cache_resource
def initialize_app() -> SessionSweeper:
    """
    Crée les tables, ferme les sessions expirées et démarre le balayage horaire.
    Exécuté une fois par processus.
    """
    configure_logging()
    logger.info("Initialisation de l'application...")
    init_db()
    sweeper = SessionSweeper()
    sweeper.run_once()
    sweeper.start_background()
    return sweeper


def login_page(auth):
    st.markdown(f"# 🔐 {settings.APP_TITLE}")
    st.caption("Encaissements, chèques, crédits et session de caisse quotidienne")
    st.markdown("---")

    col1, col2, col3 = st.columns([1, 2, 1])
    with col2:
        st.subheader("Connexion")
        with st.form("login_form"):
            username = st.text_input("Nom d'utilisateur")
            password = st.text_input("Mot de passe", type="password")
            submit = st.form_submit_button("Se connecter", use_container_width=True, type="primary")

        if submit:
            if not username or not password:
                st.error("Veuillez saisir le nom d'utilisateur et le mot de passe.")
            else:
                db = SessionLocal()
                try:
                    with st.spinner("Vérification de la session..."):
                        result = auth.authenticate(db, username, password)
                finally:
                    db.close()

                if result.success:
                    st.session_state["session_message"] = result.message
                    st.rerun()
                elif result.outcome == LoginOutcome.SESSION_CLOSED:
                    st.warning(result.message)
                else:
                    st.error(result.message)

        st.caption(
            f"{auth.users.admin.username}: accès admin illimité · "
            "autres utilisateurs: session quotidienne · fermeture automatique à minuit"
        )


def home_page(auth):
    user = auth.current_user()

    st.markdown("# 🏠 Accueil")
    st.markdown(f"Bonjour **{user.username}** ! Utilisez le menu pour naviguer.")
    st.markdown("---")

    db = SessionLocal()
    try:
        session = SessionService.get_today(db)
    finally:
        db.close()

    if session is None:
        warning_box("Aucune session de caisse pour aujourd'hui.")
    elif session.session_fermee:
        warning_box(f"Session du {format_date(session.date_session)} fermée.")
    else:
        success_box(format_open_session(session))

    col1, col2 = st.columns(2)
    with col1:
        st.metric("Aujourd'hui", format_date(date.today()))
    with col2:
        st.metric("Profil", "Administrateur" if user.is_admin else "Utilisateur")


def main():
    initialize_app()
    auth = get_auth_service()

    # Première exécution de chaque session Streamlit (rechargement, nouvel onglet):
    # reconnexion automatique depuis le cookie du navigateur
    if "session_restored" not in st.session_state:
        st.session_state["session_restored"] = True
        db = SessionLocal()
        try:
            restored = auth.restore(db)
        finally:
            db.close()
        if restored.message:
            st.session_state["session_message"] = restored.message

    session_message_box(st.session_state.pop("session_message", ""))

    if not auth.is_authenticated():
        login_page(auth)
    else:
        show_sidebar(auth)
        home_page(auth)

    sync_browser_session(auth)


if __name__ == "__main__":
    main()
