from logquery_exporter.cli import app

app()
