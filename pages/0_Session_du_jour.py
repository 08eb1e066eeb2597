import sys
from pathlib import Path

_ROOT = Path(__file__).resolve().parents[1]
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

import pandas as pd
import streamlit as st

from config.database import SessionLocal
from services.auth_service import require_auth
from services.reconciliation_service import ReconciliationService
from services.session_service import SessionService
from utils.formatters import format_currency, format_date
from utils.navigation import show_sidebar
from utils.ui_helpers import info_box, success_box, warning_box


st.set_page_config(page_title="Session du jour", page_icon="💰", layout="wide")

auth = require_auth()
show_sidebar(auth)

user = auth.current_user()
session_date = auth.cache.session_date()

st.markdown(
    "<p style='margin:0 0 0.25rem 0; font-size:1.25rem;'><strong>💰 Session du jour</strong></p>"
    "<p style='margin:0; font-size:0.8rem; color:#666;'>Une seule session partagée par jour, fermée à la déconnexion ou à minuit.</p>",
    unsafe_allow_html=True,
)
st.markdown("---")

db = SessionLocal()

try:
    session = SessionService.get_by_date(db, session_date)
    detail = ReconciliationService.transactions_detail(db, session_date)

    if session is None:
        warning_box(f"Aucune session enregistrée pour le {format_date(session_date)}.")
    elif session.session_fermee:
        warning_box(
            f"Session du {format_date(session.date_session)} fermée "
            f"(total espèce {format_currency(session.total_espece)})."
        )
    else:
        success_box(
            f"Session du {format_date(session.date_session)} ouverte par {session.cree_par}."
        )

    st.subheader("Encaissements de la journée")
    col1, col2, col3, col4, col5 = st.columns(5)
    col1.metric("💵 Espèces", format_currency(detail.espece))
    col2.metric("📄 Chèques", format_currency(detail.cheque))
    col3.metric("💳 Cartes", format_currency(detail.carte))
    col4.metric("🏦 Virements", format_currency(detail.virement))
    col5.metric("Total", format_currency(detail.total_general))

    if detail.transactions:
        df = pd.DataFrame(
            [
                {
                    "Heure": r.created_at.strftime("%H:%M"),
                    "Type": r.type or "",
                    "Contrat": r.numero_contrat or "",
                    "Assuré": r.assure or "",
                    "Mode": r.mode_paiement,
                    "Montant": format_currency(r.montant),
                }
                for r in detail.transactions
            ]
        )
        st.dataframe(df, use_container_width=True, hide_index=True)
    else:
        info_box("Aucune opération enregistrée pour cette journée.")

    if session is not None and not session.session_fermee:
        discrepancy = ReconciliationService.verify_single(db, session.id, session.date_session)
        if discrepancy:
            warning_box(
                f"Total espèce enregistré {format_currency(discrepancy.current_total)}, "
                f"calculé {format_currency(discrepancy.calculated_total)}: "
                "il sera mis à jour à la fermeture."
            )

    st.markdown("---")
    st.subheader("Fermer la session et se déconnecter")
    if user.is_admin:
        st.info("L'administrateur se déconnecte sans fermer la session du jour (menu latéral).")
    else:
        st.caption(
            "Imprimez la feuille de caisse avant de confirmer: la session sera fermée "
            "pour toute la journée et aucune reconnexion ne sera possible avant demain."
        )
        with st.form("fermer_session"):
            confirmer = st.checkbox("Je confirme la fermeture de la session")
            fermer = st.form_submit_button("Fermer la session", type="primary")
        if fermer:
            if not confirmer:
                st.error("Cochez la confirmation pour fermer la session.")
            else:
                if auth.logout(db, user.username):
                    st.session_state["session_message"] = "Déconnexion réussie - Session fermée"
                else:
                    st.session_state["session_message"] = (
                        "Déconnexion effectuée, mais la session n'a pas pu être enregistrée."
                    )
                st.switch_page("app.py")
finally:
    db.close()
