"""Database seeding script."""

from datetime import date, timedelta

from printshop.config import settings
from printshop.database import Database
from printshop.models.commessa import Commessa
from printshop.models.file_origine import FileOrigine
from printshop.models.gcode import Gcode
from printshop.models.ordine import Ordine
from printshop.models.organization import Organizzazione, OrganizzazioneUtente, Utente
from printshop.models.stampante import Stampante


def seed_database(database: Database) -> None:
    """Seed database with a demo organization, printers and one order."""
    db = database.session()

    try:
        existing = db.query(Organizzazione).filter_by(nome="Demo Print Shop").first()

        if existing:
            print("Database already seeded. Skipping.")
            return

        organizzazione = Organizzazione(nome="Demo Print Shop")
        db.add(organizzazione)
        db.flush()
        print(f"Created organization: {organizzazione.nome} (ID: {organizzazione.id})")

        utente = Utente(id="demo-admin", email="admin@example.com", nome="Demo Admin", is_superuser=True)
        db.add(utente)
        db.add(OrganizzazioneUtente(user_id=utente.id, organizzazione_id=organizzazione.id, role="admin"))
        print(f"Created user: {utente.email}")

        stampanti = [
            Stampante(
                nome="Voron 2.4",
                modello="Voron 2.4 350",
                organizzazione_id=organizzazione.id,
                tipo_sistema="klipper",
                endpoint_api="http://voron.local:7125",
            ),
            Stampante(
                nome="Bambu X1C",
                modello="X1 Carbon",
                organizzazione_id=organizzazione.id,
                ha_entity_id="sensor.x1c_print_status",
            ),
        ]
        for stampante in stampanti:
            db.add(stampante)
            print(f"Created printer: {stampante.nome}")

        commessa = Commessa(nome="Staffe supporto", organizzazione_id=organizzazione.id)
        db.add(commessa)
        db.flush()

        file_origine = FileOrigine(
            nome_file="demo_print_shop/staffe_supporto/staffa.stl",
            commessa_id=commessa.id,
            tipo="stl",
            user_id=utente.id,
        )
        db.add(file_origine)
        db.flush()

        gcode = Gcode(
            file_origine_id=file_origine.id,
            nome_file="demo_print_shop/staffe_supporto/staffa/staffa_pla.gcode",
            user_id=utente.id,
            peso_grammi=42.5,
            tempo_stampa_min=95,
            materiale="PLA",
            stampante="Voron 2.4",
        )
        db.add(gcode)
        db.flush()
        file_origine.gcode_principale_id = gcode.id

        ordine = Ordine(
            gcode_id=gcode.id,
            commessa_id=commessa.id,
            organizzazione_id=organizzazione.id,
            user_id=utente.id,
            quantita=4,
            consegna_richiesta=date.today() + timedelta(days=7),
        )
        db.add(ordine)
        print(f"Created order for {ordine.quantita}x {gcode.nome_file}")

        db.commit()
        print("\n✓ Database seeded successfully!")

    except Exception as e:
        db.rollback()
        print(f"Error seeding database: {e}")
        raise
    finally:
        db.close()


if __name__ == "__main__":
    print("Starting database seeding...")
    database = Database(settings.database_url)
    try:
        seed_database(database)
    finally:
        database.dispose()
