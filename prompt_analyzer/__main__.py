from prompt_analyzer.app_factory import create_app

if __name__ == "__main__":
    app = create_app()
    # threaded so status polling keeps working while a run is in progress
    app.run(host=app.config["HOST"], port=app.config["PORT"], debug=app.config["DEBUG"], threaded=True)

#############################
#
# Key design patterns used
# •	Application Factory: create_app() builds the app and dependencies.
# •	Dependency Injection (manual): provider, scheduler and repository are passed into constructors.
# •	Service Layer: SequentialScheduler / BatchRunner run prompts; AnalysisWorkspace owns live state.
# •	Repository: ExportRepository encapsulates where export files live.
# •	Strategy: KeywordMatcher (literal or pattern) and TextProvider are swappable.
######################################################################
# Runtime request flow
# •	POST /prompts, POST /keywords fill the drafts
# •	POST /run snapshots the drafts into a session and starts a worker thread
# •	the worker calls the provider one prompt at a time, 1s apart, matching keywords on each response
# •	GET / and GET /analytics poll progress and recompute analytics from the session
# •	POST /reset drops the session; a late provider result for it is discarded
# •	POST /export writes JSON under exports_base, GET /download/<export_id>/<filename> serves it
# •	/batch/* does the same for an uploaded CSV of prompt,keywords rows
