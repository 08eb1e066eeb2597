import streamlit as st

from config.database import SessionLocal
from services.auth_service import AuthService


def show_sidebar(auth: AuthService) -> None:
    """
    Barre latérale: utilisateur connecté, liens vers les pages et déconnexion.
    """
    user = auth.current_user()

    with st.sidebar:
        st.markdown("## 🏦 Caisse")
        if user:
            st.markdown(f"**{user.username}**")
            st.caption("Administrateur" if user.is_admin else "Session quotidienne")

        st.markdown("---")
        st.markdown("### Menu")
        st.page_link("app.py", label="Accueil", icon="🏠")
        st.page_link("pages/0_Session_du_jour.py", label="Session du jour", icon="💰")
        st.page_link("pages/1_Versement_Bancaire.py", label="Versement bancaire", icon="🏦")

        st.markdown("---")
        if user and user.is_admin:
            if st.button("Se déconnecter", use_container_width=True):
                db = SessionLocal()
                try:
                    auth.logout(db, user.username)
                finally:
                    db.close()
                st.session_state["session_message"] = "Déconnexion réussie - Session admin maintenue"
                st.switch_page("app.py")
        else:
            st.caption("Fermeture de la session: page « Session du jour ».")
