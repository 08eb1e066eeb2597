import sys
from datetime import date
from decimal import Decimal
from pathlib import Path

_ROOT = Path(__file__).resolve().parents[1]
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

import pandas as pd
import streamlit as st
from dateutil.relativedelta import relativedelta

from config.database import SessionLocal
from models.daily_session import BANQUES
from services.auth_service import require_auth
from services.reconciliation_service import ReconciliationService
from services.session_service import SessionService
from utils.formatters import format_currency, format_date
from utils.navigation import show_sidebar
from utils.ui_helpers import info_box, warning_box


st.set_page_config(page_title="Versement bancaire", page_icon="🏦", layout="wide")

auth = require_auth()
show_sidebar(auth)

MOIS = [
    "Janvier", "Février", "Mars", "Avril", "Mai", "Juin",
    "Juillet", "Août", "Septembre", "Octobre", "Novembre", "Décembre",
]

st.markdown(
    "<p style='margin:0 0 0.25rem 0; font-size:1.25rem;'><strong>🏦 Versement bancaire</strong></p>"
    "<p style='margin:0; font-size:0.8rem; color:#666;'>Versements des espèces en banque, charges et cohérence des totaux.</p>",
    unsafe_allow_html=True,
)
st.markdown("---")

db = SessionLocal()

try:
    aujourdhui = date.today()
    col_mois, col_annee = st.columns(2)
    with col_mois:
        mois = st.selectbox(
            "Mois", options=list(range(1, 13)), index=aujourdhui.month - 1, format_func=lambda m: MOIS[m - 1]
        )
    with col_annee:
        annee = st.number_input("Année", min_value=2020, max_value=2100, value=aujourdhui.year, step=1)
    annee = int(annee)

    stats = SessionService.monthly_stats(db, mois, annee)
    if stats is None:
        warning_box("Statistiques mensuelles indisponibles.")
    else:
        col1, col2, col3 = st.columns(3)
        col1.metric(
            f"Sessions non versées ({stats.non_versees.count})",
            format_currency(stats.non_versees.total),
        )
        col2.metric(
            f"Sessions versées ({stats.versees.count})",
            format_currency(stats.versees.total),
        )
        col3.metric("Charges du mois", format_currency(stats.total_charges))

    # ----- Liste des sessions -----
    st.markdown("---")
    st.subheader("Liste des sessions")
    col_debut, col_fin, col_btn = st.columns([1, 1, 1])
    with col_debut:
        date_debut = st.date_input("Du", value=None, key="filtre_debut")
    with col_fin:
        date_fin = st.date_input("Au", value=None, key="filtre_fin")
    with col_btn:
        st.write("")
        sync = st.button(
            "Vérifier et synchroniser les totaux",
            help="Recalcule le total espèce de chaque session depuis la table rapport",
        )

    if sync:
        with st.spinner("Vérification des totaux espèce..."):
            corrigees = ReconciliationService.verify_and_sync(db)
        st.success(f"Vérification terminée - {corrigees} session(s) mise(s) à jour")

    if date_debut and date_fin:
        sessions = SessionService.list_by_range(db, date_debut, date_fin)
    else:
        sessions = SessionService.list_recent(db, 15)

    quinzaine = SessionService.fortnight_charges(sessions, mois, annee)
    q1, q2, q3 = st.columns(3)
    dernier_jour = (date(annee, mois, 1) + relativedelta(months=1, days=-1)).day
    q1.metric(f"Charges 1-15 {MOIS[mois - 1]}", format_currency(quinzaine.premiere))
    q2.metric(f"Charges 16-{dernier_jour} {MOIS[mois - 1]}", format_currency(quinzaine.deuxieme))
    q3.metric("Total charges", format_currency(quinzaine.total))

    # Alerte non bloquante si un total enregistré diverge de la table rapport
    for d in ReconciliationService.verify_many(db, sessions):
        warning_box(
            f"Incohérence détectée pour la session du {format_date(d.date_session)}: "
            f"enregistré {format_currency(d.current_total)}, calculé {format_currency(d.calculated_total)} "
            f"(écart {format_currency(d.difference)})"
        )

    if not sessions:
        info_box("Aucune session trouvée.")
    else:
        df = pd.DataFrame(
            [
                {
                    "Date session": format_date(s.date_session),
                    "Total espèce": format_currency(s.total_espece),
                    "Charges": format_currency(s.charges),
                    "Net": format_currency(s.net_espece),
                    "Versement": format_currency(s.versement),
                    "Date versement": format_date(s.date_versement),
                    "Banque": s.banque or "",
                    "Solde": format_currency(s.solde),
                    "Statut": s.statut,
                    "Fermée": "Oui" if s.session_fermee else "Non",
                    "Par": s.cree_par,
                }
                for s in sessions
            ]
        )
        st.dataframe(df, use_container_width=True, hide_index=True)

    # ----- Nouveau versement -----
    st.markdown("---")
    st.subheader("Enregistrer un versement")
    with st.form("versement"):
        col1, col2 = st.columns(2)
        with col1:
            date_session = st.date_input("Date de session", value=None)
            versement = st.number_input("Montant versé (DT)", min_value=0.0, step=10.0, format="%.3f")
            charges = st.number_input("Charges (DT)", min_value=0.0, step=1.0, format="%.3f")
        with col2:
            date_versement = st.date_input("Date du versement", value=aujourdhui)
            banque = st.selectbox("Banque", options=list(BANQUES))
        enregistrer = st.form_submit_button("Enregistrer le versement", type="primary")

    if enregistrer:
        if not versement or not date_versement or not date_session:
            st.error("Veuillez remplir tous les champs obligatoires.")
        else:
            session = SessionService.get_by_date(db, date_session)
            if session is None:
                st.error("Session introuvable")
            elif SessionService.record_deposit(
                db,
                session.id,
                Decimal(str(versement)),
                date_versement,
                banque,
                Decimal(str(charges)),
            ):
                st.success("Versement enregistré avec succès")
                st.rerun()
            else:
                st.error("Erreur lors de l'enregistrement du versement")
finally:
    db.close()
