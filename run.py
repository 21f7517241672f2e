from meeting_wizard.main import create_app

app = create_app()
