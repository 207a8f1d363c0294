# Flask blueprints package
